from .service import AppliedImage, CompendiumError, CompendiumMapper, ImageCacher, MappingReport

__all__ = [
    "AppliedImage",
    "CompendiumError",
    "CompendiumMapper",
    "ImageCacher",
    "MappingReport",
]
