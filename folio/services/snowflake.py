"""
Snowflake connection factory - Folio Pipeline Engine
folio/services/snowflake.py
"""
import snowflake.connector

from folio.config import settings
from folio.core.exceptions import DatabaseConnectionException


def get_snowflake_connection():
    """
    Snowflake connection factory.
    Used by repositories via BaseRepository.get_connection().
    """
    if not settings.SNOWFLAKE_ACCOUNT:
        raise DatabaseConnectionException("SNOWFLAKE_ACCOUNT is not configured")

    return snowflake.connector.connect(
        account=settings.SNOWFLAKE_ACCOUNT,
        user=settings.SNOWFLAKE_USER,
        password=(
            settings.SNOWFLAKE_PASSWORD.get_secret_value()
            if settings.SNOWFLAKE_PASSWORD else None
        ),
        warehouse=settings.SNOWFLAKE_WAREHOUSE,
        database=settings.SNOWFLAKE_DATABASE,
        schema=settings.SNOWFLAKE_SCHEMA,
        role=settings.SNOWFLAKE_ROLE,
    )
