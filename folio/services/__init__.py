"""
Services module for the Folio Pipeline Engine.
"""

from folio.services.cache import get_cache
from folio.services.image_generation import get_image_client
from folio.services.llm import get_llm_client
from folio.services.redis_cache import RedisCache
from folio.services.s3_storage import get_storage
from folio.services.snowflake import get_snowflake_connection
