"""Graph layer — node/edge models, categories, assembly and focus queries."""
