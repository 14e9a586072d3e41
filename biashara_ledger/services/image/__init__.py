"""Receipt image storage package."""

from biashara_ledger.services.image.cloudinary_service import CloudinaryReceiptStorage

__all__ = ["CloudinaryReceiptStorage"]
