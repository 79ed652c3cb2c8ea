"""DocChat: retrieval-augmented chat over an ingested document knowledge base."""

__version__ = "0.1.0"
