from .local import LocalImageSource
from .s3 import S3ImageSource, parse_list_objects
from .forge import ForgeAssetsClient, ForgeImageSource, ForgeListing

__all__ = [
    "LocalImageSource",
    "S3ImageSource",
    "parse_list_objects",
    "ForgeAssetsClient",
    "ForgeImageSource",
    "ForgeListing",
]
