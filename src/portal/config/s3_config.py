import os
import logging
import boto3
from dotenv import load_dotenv
from botocore.exceptions import NoCredentialsError, ClientError

# Configure logging
logger = logging.getLogger(__name__)

# Load environment variables from .env file
load_dotenv()

# AWS configuration for the S3 document backend
AWS_ACCESS_KEY_ID = os.getenv("AWS_ACCESS_KEY_ID")
AWS_SECRET_ACCESS_KEY = os.getenv("AWS_SECRET_ACCESS_KEY")
AWS_REGION = os.getenv("AWS_REGION")
S3_BUCKET_NAME = os.getenv("S3_BUCKET_NAME")
CLOUDFRONT_DOMAIN = os.getenv("CLOUDFRONT_DOMAIN")
CLOUDFRONT_DISTRIBUTION_ID = os.getenv("CLOUDFRONT_DISTRIBUTION_ID")

s3_client = None
cloudfront_client = None


def init_s3_clients():
    """Build the S3 and CloudFront clients, leaving them as None when not configured."""
    global s3_client, cloudfront_client

    missing_vars = [
        name
        for name, value in (
            ("AWS_ACCESS_KEY_ID", AWS_ACCESS_KEY_ID),
            ("AWS_SECRET_ACCESS_KEY", AWS_SECRET_ACCESS_KEY),
            ("S3_BUCKET_NAME", S3_BUCKET_NAME),
            ("AWS_REGION", AWS_REGION),
        )
        if not value
    ]
    if missing_vars:
        logger.error(f"Missing required AWS S3 configuration: {', '.join(missing_vars)}")
        return None

    try:
        s3_client = boto3.client(
            "s3",
            aws_access_key_id=AWS_ACCESS_KEY_ID,
            aws_secret_access_key=AWS_SECRET_ACCESS_KEY,
            region_name=AWS_REGION,
        )
        s3_client.head_bucket(Bucket=S3_BUCKET_NAME)
        logger.info(f"S3 client initialized successfully for bucket: {S3_BUCKET_NAME}")
    except NoCredentialsError:
        logger.error("AWS credentials not found. Please check your environment variables.")
        s3_client = None
    except ClientError as e:
        error_code = e.response["Error"]["Code"]
        if error_code in ("NoSuchBucket", "404"):
            logger.error(f"S3 bucket '{S3_BUCKET_NAME}' does not exist in region '{AWS_REGION}'")
        elif error_code in ("AccessDenied", "403"):
            logger.error(f"Access denied to S3 bucket '{S3_BUCKET_NAME}'. Check IAM permissions.")
        else:
            logger.error(f"S3 client error: {str(e)}")
        s3_client = None

    if s3_client is not None and CLOUDFRONT_DISTRIBUTION_ID:
        cloudfront_client = boto3.client(
            "cloudfront",
            aws_access_key_id=AWS_ACCESS_KEY_ID,
            aws_secret_access_key=AWS_SECRET_ACCESS_KEY,
        )
    return s3_client
