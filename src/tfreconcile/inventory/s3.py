"""S3 bucket, bucket sub-resource and object verifiers."""

from botocore.exceptions import ClientError

from tfreconcile.engine.models import VerificationOutcome
from tfreconcile.inventory.base import AwsVerifier
from tfreconcile.state.models import AttributeView
from tfreconcile.utils.errors import client_error_code
from tfreconcile.utils.logging import get_logger

logger = get_logger(__name__)

# HeadBucket has no body, so botocore reports the bare HTTP status
BUCKET_MISSING_CODES = frozenset({'404', 'NoSuchBucket', 'NotFound'})
ACCESS_DENIED_CODES = frozenset({'403', 'Forbidden', 'AccessDenied'})


class S3BucketVerifier(AwsVerifier):
    """aws_s3_bucket. Access denial is reported as existing, with a warning."""

    service = 's3'
    not_found_codes = BUCKET_MISSING_CODES

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        bucket = attributes.require('bucket')
        try:
            self.call(self.client.head_bucket, Bucket=bucket)
        except ClientError as e:
            if client_error_code(e) not in ACCESS_DENIED_CODES:
                raise
            warning = f"Access denied to S3 bucket '{bucket}'. Assuming it exists"
            logger.warning(warning)
            return VerificationOutcome.found(bucket, warning=warning)
        return VerificationOutcome.found(bucket)


class S3BucketSubresourceVerifier(AwsVerifier):
    """Bucket-scoped configuration whose ID is the bucket name.

    Subclasses name the getter and the error code meaning the configuration
    is absent.
    """

    service = 's3'
    operation = ''
    missing_code = ''

    def __init__(self, client, retry=None):
        super().__init__(client, retry=retry)
        self.not_found_codes = BUCKET_MISSING_CODES | ({self.missing_code} if self.missing_code else set())

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        bucket = attributes.require('bucket')
        response = self.call(getattr(self.client, self.operation), Bucket=bucket)
        if not self.is_configured(response):
            return VerificationOutcome.not_found()
        return VerificationOutcome.found(bucket)

    def is_configured(self, response: dict) -> bool:
        return True


class S3BucketPolicyVerifier(S3BucketSubresourceVerifier):
    operation = 'get_bucket_policy'
    missing_code = 'NoSuchBucketPolicy'

    def is_configured(self, response: dict) -> bool:
        return bool(response.get('Policy'))


class S3BucketAclVerifier(S3BucketSubresourceVerifier):
    operation = 'get_bucket_acl'


class S3BucketOwnershipControlsVerifier(S3BucketSubresourceVerifier):
    operation = 'get_bucket_ownership_controls'
    missing_code = 'OwnershipControlsNotFoundError'


class S3BucketPublicAccessBlockVerifier(S3BucketSubresourceVerifier):
    operation = 'get_public_access_block'
    missing_code = 'NoSuchPublicAccessBlockConfiguration'


class S3BucketWebsiteConfigurationVerifier(S3BucketSubresourceVerifier):
    operation = 'get_bucket_website'
    missing_code = 'NoSuchWebsiteConfiguration'


class S3BucketCorsConfigurationVerifier(S3BucketSubresourceVerifier):
    operation = 'get_bucket_cors'
    missing_code = 'NoSuchCORSConfiguration'


class S3BucketNotificationVerifier(S3BucketSubresourceVerifier):
    operation = 'get_bucket_notification_configuration'

    def is_configured(self, response: dict) -> bool:
        return any(
            response.get(key)
            for key in (
                'TopicConfigurations',
                'QueueConfigurations',
                'LambdaFunctionConfigurations',
                'EventBridgeConfiguration',
            )
        )


class S3ObjectVerifier(AwsVerifier):
    """aws_s3_object, identified by bucket and key."""

    service = 's3'
    not_found_codes = frozenset({'404', 'NoSuchKey', 'NotFound', 'NoSuchBucket'})

    def lookup(self, attributes: AttributeView) -> VerificationOutcome:
        bucket, key = attributes.require('bucket', 'key')
        self.call(self.client.head_object, Bucket=bucket, Key=key)
        return VerificationOutcome.found(key)
