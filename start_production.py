#!/usr/bin/env python3
'''
GAG Drop Watch - production start script.
'''
import os
import sys
import asyncio
import logging
from pathlib import Path

from dotenv import load_dotenv

# Ensure we're in the right directory
os.chdir(Path(__file__).parent)
load_dotenv()

for directory in ('data', 'logs', 'config'):
    Path(directory).mkdir(parents=True, exist_ok=True)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler('logs/production.log', encoding='utf-8'),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)


def check_environment():
    '''Check if environment is properly configured.'''
    logger.info("Checking environment configuration...")

    if not os.getenv('DISCORD_TOKEN'):
        logger.error("DISCORD_TOKEN not set! Please configure your environment.")
        logger.error("Set it in .env file or as environment variable.")
        return False

    if not os.getenv('ADMIN_ID'):
        logger.warning("ADMIN_ID not set, admin commands are disabled")
    if not os.getenv('WEB_INTERFACE_URL'):
        logger.warning("WEB_INTERFACE_URL not set, registration prompts will point to /register")

    os.environ.setdefault('ENVIRONMENT', 'production')
    logger.info("✅ Environment check passed")
    return True


async def main():
    '''Start GAG Drop Watch.'''
    logger.info("=" * 60)
    logger.info("🚀 GAG DROP WATCH - STARTING")
    logger.info("=" * 60)

    if not check_environment():
        logger.error("❌ Environment check failed. Please fix issues and try again.")
        return

    from gagwatch.main import main as app_main
    await app_main()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("👋 Shutdown requested by user")
    except Exception as e:
        logger.error(f"💥 Fatal error: {e}")
        sys.exit(1)
