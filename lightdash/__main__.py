import argparse
import logging
import sys

from .core.config import get_config
from .core.db.db import DatabaseManager, get_database_manager, wait_for_db
from .core.encryption import EncryptionService
from .core.errors import ParseError


def setup_logging(log_level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )
    # Reduce noise from third-party libraries
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.ERROR)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("psycopg2").setLevel(logging.WARNING)
    logging.getLogger("backoff").setLevel(logging.ERROR)


logger = logging.getLogger(__name__)


def _build_services(db_manager: DatabaseManager, secret: str) -> dict:
    from .core.auth import ProjectAccessService
    from .core.project import ExploreCache, ProjectLockCoordinator, ProjectModel
    from .core.services import ProjectService

    project_model = ProjectModel(db_manager, EncryptionService(secret))
    explore_cache = ExploreCache(db_manager)
    return {
        "project_model": project_model,
        "explore_cache": explore_cache,
        "access_service": ProjectAccessService(db_manager),
        "project_service": ProjectService(
            db_manager,
            project_model,
            explore_cache,
            ProjectLockCoordinator(db_manager),
        ),
    }


def _serve(args, db_manager: DatabaseManager, config) -> None:
    services = _build_services(db_manager, config.lightdash_secret)

    from .api.app import create_app
    app = create_app(
        project_service=services["project_service"],
        access_service=services["access_service"],
        explore_cache=services["explore_cache"],
        site_url=config.site_url,
    )

    import uvicorn

    logger.info(f"Starting FastAPI server on http://0.0.0.0:{args.port}")
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=args.port,
        log_level=args.log_level.lower(),
    )


def _duplicate(args, db_manager: DatabaseManager, config) -> None:
    services = _build_services(db_manager, config.lightdash_secret)
    mapping = services["project_model"].duplicate_content(args.source, args.preview)
    print(mapping.model_dump_json(by_alias=True, indent=2))


def main():
    """Main entry point for the Lightdash backend."""
    try:
        config = get_config()
    except ParseError as e:
        print(f"Invalid configuration: {e.message}", file=sys.stderr)
        sys.exit(1)

    parser = argparse.ArgumentParser(description="Lightdash - project data layer")
    parser.add_argument(
        "--log-level",
        type=str,
        default=config.log_level.upper(),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port for the API server")

    subparsers.add_parser("init-db", help="Create all database tables")

    duplicate_parser = subparsers.add_parser(
        "duplicate", help="Copy a project's content into a preview project"
    )
    duplicate_parser.add_argument("source", help="Source project uuid")
    duplicate_parser.add_argument("preview", help="Preview project uuid")

    args = parser.parse_args()

    setup_logging(args.log_level)

    if not config.database_url:
        logger.error("DATABASE_URL not set")
        sys.exit(1)

    db_manager = get_database_manager()
    wait_for_db(db_manager)

    if args.command == "init-db":
        db_manager.init_db()
    elif args.command == "serve":
        _serve(args, db_manager, config)
    elif args.command == "duplicate":
        _duplicate(args, db_manager, config)


if __name__ == "__main__":
    main()
