from .vector_models import VectorModel

__all__ = [
    "VectorModel",
]
