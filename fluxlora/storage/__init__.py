from .s3_client import S3Client

__all__ = ["S3Client"]
