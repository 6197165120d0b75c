"""
Snowflake Connection Factory - Accelerator Evaluation Platform
evaluation_platform/services/snowflake.py

Used by the Snowflake repositories. Credentials come from Settings, which
loads them from the environment / .env file.
"""

import snowflake.connector

from evaluation_platform.config import get_settings


def get_snowflake_connection(autocommit: bool = True):
    """Open a new Snowflake connection from configured credentials."""
    settings = get_settings()
    password = settings.SNOWFLAKE_PASSWORD.get_secret_value() if settings.SNOWFLAKE_PASSWORD else None
    return snowflake.connector.connect(
        account=settings.SNOWFLAKE_ACCOUNT,
        user=settings.SNOWFLAKE_USER,
        password=password,
        warehouse=settings.SNOWFLAKE_WAREHOUSE,
        database=settings.SNOWFLAKE_DATABASE,
        schema=settings.SNOWFLAKE_SCHEMA,
        role=settings.SNOWFLAKE_ROLE,
        autocommit=autocommit,
    )
