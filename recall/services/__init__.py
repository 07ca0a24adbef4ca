"""Business logic services: content store, identity, embeddings, vector index and pipelines."""
