# compass

A small task and planning tracker that keeps rich context alongside each
task: affected files, dependencies, blockers, acceptance criteria and a short
generated header that summarises the task within its project. Projects,
tasks, planning sessions, discoveries and decisions are stored as JSON files
in a `.compass` directory under the working directory.

It has no dependencies outside the standard library.

## Installing

```
pip install .
```

## Interactive use

Start the command loop from the directory whose `.compass` store you want to
use:

```
compass
```

Each line is a method name followed by optional JSON parameters:

```
compass> compass.project.create {"name":"My Project","description":"A test project","goal":"Learn Compass"}
compass> compass.project.set_current {"id":"<project-id>"}
compass> compass.task.create {"projectId":"<project-id>","title":"Setup","description":"Initial setup"}
compass> compass.context.search {"query":"authentication","limit":5}
compass> compass.next {}
compass> compass.context.get {"taskId":"<task-id>"}
compass> compass.planning.start {"name":"Sprint Planning"}
compass> compass.discovery.add {"insight":"Users prefer OAuth","impact":"high","source":"research"}
compass> compass.decision.record {"question":"Database choice","choice":"PostgreSQL","rationale":"Better JSON support"}
compass> compass.project.summary {}
```

Type `help` for the full list of methods and `quit` or `exit` to leave.
Results are printed as indented JSON; failures are printed as `Error: ...`.

### Methods

- Projects: `compass.project.create`, `compass.project.list`,
  `compass.project.current`, `compass.project.set_current`,
  `compass.project.summary`
- Tasks: `compass.task.create`, `compass.task.list`, `compass.task.get`,
  `compass.task.update`, `compass.task.delete`
- Context: `compass.context.get`, `compass.context.search`,
  `compass.context.check`
- Queries: `compass.next`, `compass.blockers`
- Planning: `compass.planning.start`, `compass.planning.list`,
  `compass.planning.get`, `compass.planning.complete`,
  `compass.planning.abort`
- Discoveries and decisions: `compass.discovery.add`,
  `compass.discovery.list`, `compass.decision.record`,
  `compass.decision.list`

`compass.next`, `compass.blockers`, the planning start and list methods, the
discovery and decision methods and `compass.project.summary` take an optional
`projectId` and fall back to the current project when it is left out.
`compass.context.search` returns 10 results unless `limit` is given.
`compass.task.update` applies only the `title`, `description` and `status`
keys of its `updates` object; other keys are ignored.

## Storage layout

```
.compass/
  config.json                     current project
  projects/<project-id>/
    project.json
    tasks.json
    discoveries.json
    decisions.json
    planning/sessions.json
```

Files are written to a temporary file and then renamed into place.

## Library use

```python
from compass.cli import build_server, handle_line

server = build_server(".")
project = server.handle_command(
    "compass.project.create",
    {"name": "Demo", "description": "Demo project", "goal": "Ship it"},
)
print(handle_line(server, "compass.project.list"))
```

`MCPServer.handle_command` accepts parameters as JSON text, bytes, an already
decoded mapping or `None`, and returns domain objects;
`compass.mcp.server.to_jsonable` turns them into plain JSON values. Unknown
method names raise `UnknownMethodError`; malformed parameters raise
`InvalidParamsError`. Every deliberate error derives from
`compass.errors.CompassError`.

`compass.storage.memory.MemoryStorage` offers the same storage interface as
`compass.storage.file.FileStorage` without touching the disk, which is handy
in tests.

## What it does not do

Despite the name of `MCPServer`, the package does not listen on a socket or
speak a JSON-RPC protocol over standard input. Commands are run either from
the interactive `compass` prompt, one line at a time, or by calling
`handle_command` from Python.

## Running the tests

```
pip install .[test]
pytest
```