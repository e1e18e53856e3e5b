"""
AWS Secrets Manager access for database credentials and hook secrets.
"""
import json
import logging

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class SecretsClient:
    """Reads string secrets from AWS Secrets Manager."""

    def __init__(self, secretsmanager_client):
        self.client = secretsmanager_client

    def get_secret_string(self, secret_name: str) -> str:
        """
        Fetch the SecretString of secret_name.

        Raises:
            ClientError: secret missing or not readable with current credentials
        """
        try:
            response = self.client.get_secret_value(SecretId=secret_name)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            logger.error(f"Failed to read secret {secret_name}: {code}")
            raise
        logger.info(f"Secret {secret_name} retrieved")
        return response["SecretString"]


def get_secret(secret_name: str, region_name: str = "us-east-1") -> dict:
    """Fetch a JSON secret and return it as a dict."""
    session = boto3.session.Session()
    client = session.client(service_name="secretsmanager", region_name=region_name)
    return json.loads(SecretsClient(client).get_secret_string(secret_name))
