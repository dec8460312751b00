"""Domain model: projects, tasks, planning sessions, discoveries, decisions and search values."""