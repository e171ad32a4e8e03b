"""
S3 storage client for direct uploads and object cleanup
"""
import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fluxlora.config.settings import Settings
import logging
logger = logging.getLogger(__name__)


class S3Client:
    """S3 storage client for file operations"""
    def __init__(self, settings: Settings):
        """Initialize S3 client"""
        self.client = boto3.client(
            's3',
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=settings.AWS_REGION,
            endpoint_url=settings.S3_ENDPOINT_URL
        )
        self.region = settings.AWS_REGION
        self.endpoint_url = settings.S3_ENDPOINT_URL
        self.default_expiry = settings.PRESIGNED_URL_EXPIRY

    def public_url(self, bucket: str, key: str) -> str:
        """Public URL an object will be reachable at once uploaded"""
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{bucket}/{key}"
        return f"https://{bucket}.s3.{self.region}.amazonaws.com/{key}"

    def generate_presigned_upload(self, bucket: str, key: str, content_type: str, expires_in: int = None) -> str:
        """
        Create a time-limited URL the client can PUT the object to
        Args:
            bucket: Target bucket
            key: S3 object key (path)
            content_type: Content type the upload must be sent with
            expires_in: Lifetime in seconds
        Returns:
            Presigned PUT URL
        """
        try:
            return self.client.generate_presigned_url(
                'put_object',
                Params={'Bucket': bucket, 'Key': key, 'ContentType': content_type},
                ExpiresIn=expires_in or self.default_expiry
            )
        except ClientError as e:
            logger.error(f"Error generating presigned upload URL: {e}")
            raise

    def delete_file(self, bucket: str, key: str) -> bool:
        """
        Delete file from S3
        Failures are logged and reported as False, never raised.
        """
        try:
            self.client.delete_object(Bucket=bucket, Key=key)
            logger.info(f"File deleted from S3: {bucket}/{key}")
            return True
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Error deleting file from S3 {bucket}/{key}: {e}")
            return False

