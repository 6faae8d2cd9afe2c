import logging
from .mysql import init_mysql_db, close_mysql_db, check_mysql_connection, get_async_session
from .mongodb import init_mongodb, close_mongo_connection, check_mongo_connection, get_database
from .redis import init_redis, close_redis, check_redis_connection

logger = logging.getLogger(__name__)


async def init_databases():
    """Initialize MySQL, MongoDB and Redis"""
    try:
        # Initialize MySQL (Relationship Store, User Directory)
        await init_mysql_db()
        logger.info("MySQL initialization completed")

        # Initialize MongoDB (Profile Store)
        await init_mongodb()
        logger.info("MongoDB initialization completed")

        # Initialize Redis (sessions)
        await init_redis()
        logger.info("Redis initialization completed")

        logger.info("All databases initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


async def close_databases():
    """Close all database connections"""
    try:
        await close_mysql_db()
        await close_mongo_connection()
        await close_redis()
        logger.info("All database connections closed")
    except Exception as e:
        logger.error(f"Error closing database connections: {e}")


async def check_database_health():
    """Check health of all database connections"""
    mysql_status = await check_mysql_connection()
    mongo_status = await check_mongo_connection()
    redis_status = await check_redis_connection()

    return {
        "mysql": mysql_status,
        "mongodb": mongo_status,
        "redis": redis_status,
        "overall": mysql_status and mongo_status and redis_status
    }

__all__ = [
    "init_databases",
    "close_databases",
    "check_database_health",
    "get_async_session",
    "get_database"
]
