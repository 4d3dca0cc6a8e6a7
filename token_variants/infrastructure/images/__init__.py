from .provider import CachedImageProvider, ImageDownloader

__all__ = [
    "CachedImageProvider",
    "ImageDownloader",
]
