import logging
from typing import BinaryIO, Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader

from ...config import Settings

# Set up logger for this module
logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/png", "image/webp"]
MAX_IMAGE_SIZE = 2 * 1024 * 1024


class CloudinaryStorage:
    """
    Uploads avatars and verification documents to Cloudinary.

    Uploads never raise: a failed upload is logged and returns None.
    """

    def __init__(self, settings: Settings):
        self.config = cloudinary.config(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret
        )

    def upload(self, file: BinaryIO, folder: str, resource_type: str = "image") -> Optional[str]:
        """
        Uploads a file to Cloudinary and returns the URL.
        Returns None if the upload fails.
        """
        try:
            result = cloudinary.uploader.upload(
                file,
                folder=folder,
                overwrite=True,
                resource_type=resource_type
            )
            secure_url = result.get("secure_url")
            if not secure_url:
                logger.error("Cloudinary upload result did not contain a secure_url.")
                return None
            logger.info(f"Successfully uploaded file to Cloudinary. URL: {secure_url}")
            return secure_url
        except cloudinary.exceptions.Error as e:
            logger.error(f"Cloudinary API error during upload to {folder}: {str(e)}")
            return None
        except Exception as e:
            logger.error(f"Unexpected error during upload to Cloudinary: {str(e)}")
            return None

    def upload_profile_image(self, file: BinaryIO) -> Optional[str]:
        return self.upload(file, folder="profile_images")

    def upload_document(self, file: BinaryIO) -> Optional[str]:
        return self.upload(file, folder="verification_documents", resource_type="auto")
