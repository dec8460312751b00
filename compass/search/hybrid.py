"""Search over tasks that combines keyword, header and structural matching."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Protocol

from compass.domain.context import SearchOptions, SearchResult
from compass.domain.task import Task, TaskFilter

_SNIPPET_LENGTH = 100
_SNIPPET_CONTEXT = 30


class TaskSource(Protocol):
    def list_tasks(self, task_filter: TaskFilter | None = None) -> list[Task]: ...


def highlight_text(text: str, query: str) -> str:
    """Wrap the first case-insensitive occurrence of ``query`` in ``**``."""
    index = text.lower().find(query.lower())
    if index == -1:
        return text
    end = index + len(query)
    return f"{text[:index]}**{text[index:end]}**{text[end:]}"


def extract_snippet(text: str, query: str, max_length: int) -> str:
    """Cut a highlighted excerpt around the first match of ``query``."""
    index = text.lower().find(query.lower())
    if index == -1:
        if len(text) > max_length:
            return text[:max_length] + "..."
        return text

    start = max(index - _SNIPPET_CONTEXT, 0)
    end = min(index + len(query) + _SNIPPET_CONTEXT, len(text))
    snippet = text[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet += "..."
    return highlight_text(snippet, query)


def _contains(haystack: str, needle: str) -> bool:
    return needle in haystack.lower()


class HybridSearch:
    """Scores tasks by several strategies and merges the results per task."""

    def __init__(self, storage: TaskSource | None = None) -> None:
        self.storage = storage

    def search(self, query: str, options: SearchOptions | None = None) -> list[SearchResult]:
        """Return ranked results for ``query``, paginated by ``options``."""
        options = options or SearchOptions()
        if self.storage is None:
            raise ValueError("search needs a task storage")
        tasks = self.storage.list_tasks(TaskFilter(project_id=options.project_id))
        query_lower = query.lower()

        results: list[SearchResult] = []
        for task in tasks:
            keyword = self.keyword_score(task, query_lower)
            if keyword > 0:
                results.append(
                    SearchResult(task, keyword, "keyword", self._keyword_snippet(task, query_lower))
                )
            header = self.header_score(task, query_lower)
            if header > 0:
                results.append(
                    SearchResult(task, header, "header", self._header_snippet(task, query_lower))
                )
            structural = self.structural_score(task, query_lower)
            if structural > 0:
                results.append(
                    SearchResult(
                        task, structural, "structural", self._structural_snippet(task, query_lower)
                    )
                )

        merged = self.merge_and_rank(results)

        if options.limit > 0:
            if options.offset < 0:
                raise ValueError("offset must not be negative")
            if options.offset >= len(merged):
                return []
            merged = merged[options.offset : options.offset + options.limit]
        return merged

    def keyword_score(self, task: Task, query: str) -> float:
        """Score matches in the title, description and acceptance criteria."""
        score = 0.0
        title = task.card.title.lower()
        if query in title:
            score += 10.0
            if title == query:
                score += 5.0
        if _contains(task.card.description, query):
            score += 5.0
        score += 3.0 * sum(_contains(item, query) for item in task.criteria.acceptance)
        return score

    def header_score(self, task: Task, query: str) -> float:
        """Score a match in the contextual header."""
        header = task.context.contextual_header
        if header and _contains(header, query):
            return 7.0
        return 0.0

    def structural_score(self, task: Task, query: str) -> float:
        """Score matches in files, dependencies and blockers."""
        context = task.context
        return (
            4.0 * sum(_contains(f, query) for f in context.files)
            + 6.0 * sum(_contains(d, query) for d in context.dependencies)
            + 8.0 * sum(_contains(b, query) for b in context.blockers)
        )

    def merge_and_rank(self, results: Iterable[SearchResult]) -> list[SearchResult]:
        """Sum scores per task, keep the strongest snippet, sort by score."""
        by_task: dict[str, SearchResult] = {}
        for result in results:
            existing = by_task.get(result.task.id)
            if existing is None:
                by_task[result.task.id] = replace(result)
                continue
            previous = existing.score
            existing.score += result.score
            if result.score > previous:
                existing.match_type = result.match_type
                existing.snippet = result.snippet
        return sorted(by_task.values(), key=lambda r: r.score, reverse=True)

    def _keyword_snippet(self, task: Task, query: str) -> str:
        if _contains(task.card.title, query):
            return highlight_text(task.card.title, query)
        if _contains(task.card.description, query):
            return extract_snippet(task.card.description, query, _SNIPPET_LENGTH)
        return task.card.title

    def _header_snippet(self, task: Task, query: str) -> str:
        if not task.context.contextual_header:
            return task.card.title
        return extract_snippet(task.context.contextual_header, query, _SNIPPET_LENGTH)

    def _structural_snippet(self, task: Task, query: str) -> str:
        groups = (
            ("File", task.context.files),
            ("Dependency", task.context.dependencies),
            ("Blocker", task.context.blockers),
        )
        for label, items in groups:
            for item in items:
                if _contains(item, query):
                    return f"{label}: {highlight_text(item, query)}"
        return task.card.title