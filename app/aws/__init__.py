"""
AWS integrations layer.
"""
from app.aws.secrets import get_secret

__all__ = [
    "get_secret",
]
