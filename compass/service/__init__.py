"""Services for tasks, projects, planning, context retrieval, headers and summaries."""