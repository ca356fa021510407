import os
import argparse
import subprocess
import sys
import logging
from pathlib import Path
from dotenv import load_dotenv

from portfolio_api.core.config import LOG_FORMAT

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format=LOG_FORMAT,
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger("portfolio")

# Load environment variables
load_dotenv()

DEFAULT_ENV = (
    "SECRET_KEY=change-me\n"
    "DATABASE_URL=sqlite:///./portfolio.db\n"
    "ACCESS_TOKEN_EXPIRE_MINUTES=720\n"
    "SESSION_DURATION_DAYS=7\n"
    "CORS_ORIGINS=http://localhost:4200\n"
)


def setup_environment(env_path: Path = Path(".env")):
    """Create a minimal .env file if none exists"""
    if env_path.exists():
        logger.info(".env file already exists")
        return

    example_path = env_path.with_name(".env.example")
    if example_path.exists():
        logger.info("Creating .env file from .env.example...")
        env_path.write_text(example_path.read_text())
    else:
        logger.info("Creating basic .env file...")
        env_path.write_text(DEFAULT_ENV)
    logger.info("Created .env file. Please update it with your actual values.")


def setup_database(database_url: str = None) -> bool:
    """Create database tables and add any missing columns"""
    logger.info("Setting up database...")

    try:
        from portfolio_api.core.config import settings
        from portfolio_api.db.base import Database

        database = Database(database_url or settings.database_url)
        database.create_all()
        database.dispose()
        logger.info("Database tables created successfully!")
        return True
    except Exception as e:
        logger.error(f"Error setting up database: {str(e)}")
        logger.debug("This error may be normal if the database is already set up.", exc_info=True)
        return False


def start_server(port=8000, reload=True):
    """Start the FastAPI server using uvicorn"""
    port = int(os.environ.get("PORT", port))
    logger.info(f"Starting server on port {port}...")

    args = ["uvicorn", "main:app", "--host", "0.0.0.0", "--port", str(port)]

    if reload:
        args.append("--reload")

    try:
        subprocess.run(args)
    except KeyboardInterrupt:
        logger.info("\nServer stopped")
        sys.exit(0)


def main():
    """Parse command-line arguments and run the application"""
    parser = argparse.ArgumentParser(description="Portfolio Backend API Starter")
    parser.add_argument("--port", type=int, default=8000, help="Port to run the server on")
    parser.add_argument("--no-reload", action="store_true", help="Disable auto-reload on code changes")
    parser.add_argument("--skip-setup", action="store_true", help="Skip setting up database")
    parser.add_argument("--setup-only", action="store_true", help="Only set up environment and database")

    args = parser.parse_args()

    logger.info("Portfolio Backend API Starter")
    logger.info("-----------------------------")

    setup_environment()

    if not args.skip_setup:
        setup_database()

    if args.setup_only:
        logger.info("Setup complete. Exiting.")
        return

    start_server(port=args.port, reload=not args.no_reload)


if __name__ == "__main__":
    main()
