import logging
import os
import sys
import traceback

import uvicorn

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)

# Add the src directory to Python path
current_dir = os.path.dirname(os.path.abspath(__file__))
src_path = os.path.join(current_dir, 'src')
sys.path.insert(0, src_path)

logger.info("=" * 60)
logger.info("Teleconsult Backend Startup")
logger.info("=" * 60)
logger.info(f"Python version: {sys.version.split()[0]}")
logger.info(f"  APP_ENV: {os.environ.get('APP_ENV', 'not set')}")
logger.info(f"  MONGO_URI: {'✅ set' if os.environ.get('MONGO_URI') else '❌ not set'}")
logger.info(f"  REDIS_URL: {'✅ set' if os.environ.get('REDIS_URL') else '❌ not set'}")
logger.info(f"  DIAGNOSIS_BASE_URL: {os.environ.get('DIAGNOSIS_BASE_URL', 'not set')}")
secret = os.environ.get('SERVICE_TOKEN_SECRET', '')
if secret:
    logger.info(f"  SERVICE_TOKEN_SECRET length: {len(secret)} chars {'✅' if len(secret) >= 32 else '❌ (must be >= 32)'}")
else:
    logger.info("  SERVICE_TOKEN_SECRET: ⚠️  not set (using default)")

if __name__ == "__main__":
    try:
        from teleconsult.core.config import get_settings
        try:
            settings = get_settings()
        except ValueError as ve:
            logger.error(f"❌ Configuration validation failed: {ve}")
            logger.error(traceback.format_exc())
            logger.error("  1. SERVICE_TOKEN_SECRET must be >= 32 characters")
            logger.error("  2. MONGO_URI must start with mongodb:// or mongodb+srv://")
            sys.exit(1)

        port = int(os.environ.get("PORT", settings.port))
        host = os.environ.get("HOST", settings.host)
        logger.info(f"Starting uvicorn server on {host}:{port}...")
        uvicorn.run(
            "teleconsult.app:app",
            host=host,
            port=port,
            workers=1,
            log_level="info",
            access_log=True,
            timeout_keep_alive=75,
            timeout_graceful_shutdown=30,
        )
    except KeyboardInterrupt:
        logger.info("⚠️  Shutting down due to keyboard interrupt")
        sys.exit(0)
    except Exception as e:
        logger.error(f"❌ CRITICAL: Failed to start application: {type(e).__name__}: {e}")
        logger.error(traceback.format_exc())
        sys.exit(1)
