"""Client-side API access and upload ordering."""

from .api_client import ApiClient
from .upload_queue import UploadQueue

__all__ = ["ApiClient", "UploadQueue"]
