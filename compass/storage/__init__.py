"""In-memory and JSON file storage backends."""