"""
Configuration module for Lambda handlers.
Loads all environment variables needed by the order marketplace.
"""
import os
from typing import Dict, List, Mapping, Optional

from .errors import ConfigError


DEFAULT_SHEET_URL = (
    'https://docs.google.com/spreadsheets/d/1U3FZz4TCV3axNXy9U97xa9Zq85pCpTPZFNIy4Nfg7us'
    '/gviz/tq?tqx=out:json&gid=2062186565'
)


class Config:
    """Centralized configuration from environment variables."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        env = os.environ if environ is None else environ

        # AWS Region
        self.AWS_REGION = env.get('AWS_REGION', 'us-east-1')

        # DynamoDB Tables
        self.ORDERS_TABLE = env.get('ORDERS_TABLE', '')
        self.ASSIGNMENTS_TABLE = env.get('ASSIGNMENTS_TABLE', '')
        self.PROFILES_TABLE = env.get('PROFILES_TABLE', '')
        self.SETTINGS_TABLE = env.get('SETTINGS_TABLE', '')

        # Intake sheet feed
        self.SHEET_URL = env.get('SHEET_URL', DEFAULT_SHEET_URL)
        self.FEED_TIMEOUT_SECONDS = float(env.get('FEED_TIMEOUT_SECONDS', '30'))
        self.PURGE_CHUNK_SIZE = int(env.get('PURGE_CHUNK_SIZE', '1000'))  # Bound for delete batches

        # CORS
        self.ALLOWED_ORIGINS = [
            origin.strip()
            for origin in env.get('ALLOWED_ORIGINS', '*').split(',')
            if origin.strip()
        ] or ['*']

        # Admin dashboard
        self.REVENUE_THRESHOLD_DEFAULT = float(env.get('REVENUE_THRESHOLD_DEFAULT', '30000'))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Config':
        """Build a fresh config, e.g. for a single sync invocation."""
        return cls(environ)

    def missing(self, *names: str) -> List[str]:
        """Return the names of required settings that are empty."""
        return [name for name in names if not getattr(self, name, None)]

    def validate(self, *names: str) -> 'Config':
        """
        Fail fast when required settings are absent.

        Args:
            names: Setting names to require (defaults to ORDERS_TABLE)

        Returns:
            The config itself, so calls can be chained

        Raises:
            ConfigError: listing every missing setting
        """
        missing = self.missing(*(names or ('ORDERS_TABLE',)))
        if missing:
            raise ConfigError(missing)
        if self.PURGE_CHUNK_SIZE <= 0:
            raise ConfigError(['PURGE_CHUNK_SIZE'])
        return self

    def cors_headers(self) -> Dict[str, str]:
        """CORS headers; credentials are only allowed for an explicit origin."""
        origin = self.ALLOWED_ORIGINS[0]
        headers = {
            'Access-Control-Allow-Origin': origin,
            'Access-Control-Allow-Headers': 'authorization, x-client-info, apikey, content-type',
            'Access-Control-Allow-Methods': 'GET, POST, OPTIONS',
        }
        if origin != '*':
            headers['Access-Control-Allow-Credentials'] = 'true'
        return headers


config = Config()
