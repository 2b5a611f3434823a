import os
from datetime import datetime, timezone
from typing import Any, Dict

import boto3


class S3StorageProvider:
    provider_type = "s3"

    def __init__(self, config: Dict[str, Any]):
        config = config or {}
        self.bucket = str(config.get("bucket") or "").strip()
        self.region = str(config.get("region") or os.environ.get("AWS_DEFAULT_REGION") or os.environ.get("AWS_REGION") or "").strip()
        self.prefix = str(config.get("prefix") or "").strip().strip("/")
        self.kms_key_id = str(config.get("kms_key_id") or "").strip()
        self.client = boto3.client("s3", region_name=self.region) if self.region else boto3.client("s3")

    def _object_key(self, key: str) -> str:
        return f"{self.prefix}/{key}" if self.prefix else key

    def put_archive(self, key: str, data: bytes) -> Dict[str, Any]:
        if not self.bucket:
            raise RuntimeError("s3 archive bucket is not configured")
        params: Dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": self._object_key(key),
            "Body": data,
            "ContentType": "application/gzip",
        }
        if self.kms_key_id:
            params["ServerSideEncryption"] = "aws:kms"
            params["SSEKMSKeyId"] = self.kms_key_id
        self.client.put_object(**params)
        return {
            "provider": self.provider_type,
            "bucket": self.bucket,
            "region": self.region,
            "key": params["Key"],
            "size_bytes": len(data),
            "stored_at": datetime.now(timezone.utc).isoformat(),
        }

    def _location(self, metadata: Dict[str, Any]):
        bucket = metadata.get("bucket") or self.bucket
        key = metadata.get("key")
        if not bucket or not key:
            raise RuntimeError("archive metadata is missing bucket or key")
        return bucket, key

    def get_archive(self, metadata: Dict[str, Any]) -> bytes:
        bucket, key = self._location(metadata)
        return self.client.get_object(Bucket=bucket, Key=key)["Body"].read()

    def delete_archive(self, metadata: Dict[str, Any]) -> None:
        bucket, key = self._location(metadata)
        self.client.delete_object(Bucket=bucket, Key=key)
