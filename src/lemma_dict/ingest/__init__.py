"""Raw record models, reading, filtering and retrieval."""
