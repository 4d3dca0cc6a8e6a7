from .service import ImageCatalog, ImageSearchService

__all__ = [
    "ImageCatalog",
    "ImageSearchService",
]
