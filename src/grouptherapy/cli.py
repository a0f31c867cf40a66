"""
GroupTherapy CLI - Entry point

Runs the radio API server, manages the database and admin accounts, and
plays the station as a synchronized listener.
"""

import argparse
import asyncio
import getpass
import sys
from typing import Optional

from loguru import logger

from grouptherapy.core.config import load_config, write_default_config
from grouptherapy.core.output import setup_loguru


def run_serve(host: Optional[str] = None, port: Optional[int] = None, reload: bool = False) -> int:
    """Run the FastAPI app with uvicorn.

    Returns:
        Exit code (0 for success)
    """
    import uvicorn

    config = load_config()
    setup_loguru(config.logging)

    host = host or config.server.host
    port = port or config.server.port
    logger.info(f'Starting radio API on {host}:{port}')
    uvicorn.run('web.backend.main:app', host=host, port=port, reload=reload, log_level='info')
    return 0


def run_init_db() -> int:
    """Write the default config if missing, then create or migrate the schema."""
    from grouptherapy.core.db_adapter import init_schema, is_postgres

    config_path = write_default_config()
    print(f'Config: {config_path}')

    config = load_config()
    setup_loguru(config.logging)

    init_schema()
    print(f"Database ready ({'PostgreSQL' if is_postgres() else 'SQLite'})")
    return 0


def run_create_admin(username: str) -> int:
    """Create an admin user, prompting for the password.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    from grouptherapy.core.db_adapter import init_schema
    from grouptherapy.domain.auth import create_admin_user

    config = load_config()
    setup_loguru(config.logging)
    init_schema()

    password = getpass.getpass(f'Password for {username}: ')
    confirm = getpass.getpass('Confirm password: ')
    if password != confirm:
        print('❌ Passwords do not match', file=sys.stderr)
        return 1

    try:
        create_admin_user(username, password, rounds=config.auth.bcrypt_rounds)
    except ValueError as e:
        print(f'❌ {e}', file=sys.stderr)
        return 1

    print(f'✅ Created admin user {username}')
    return 0


def run_listen(server_url: Optional[str] = None) -> int:
    """Play the station until interrupted.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    from grouptherapy.domain.playback import MpvUnavailableError, check_mpv_available, run_listener

    config = load_config()
    setup_loguru(config.logging)

    if server_url:
        config.client.server_url = server_url
    try:
        config.client.validate()
    except ValueError as e:
        print(f'❌ Invalid client config: {e}', file=sys.stderr)
        return 1

    if not check_mpv_available():
        print('❌ mpv is required for listening; install it and try again', file=sys.stderr)
        return 1

    try:
        asyncio.run(run_listener(config))
    except KeyboardInterrupt:
        print('\nStopped listening')
    except MpvUnavailableError as e:
        print(f'❌ {e}', file=sys.stderr)
        return 1
    return 0


def main() -> None:
    """Main entry point for the grouptherapy command."""
    parser = argparse.ArgumentParser(
        description='GroupTherapy Radio - Scheduled broadcast radio',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    subparsers = parser.add_subparsers(dest='subcommand', help='Available commands')

    serve_parser = subparsers.add_parser('serve', help='Run the radio API server')
    serve_parser.add_argument('--host', help='Bind address (default from config)')
    serve_parser.add_argument('--port', type=int, help='Port (default from config)')
    serve_parser.add_argument(
        '--reload',
        action='store_true',
        help='Reload on code changes (development)'
    )

    subparsers.add_parser('init-db', help='Create or migrate the database schema')

    admin_parser = subparsers.add_parser('create-admin', help='Create an admin user')
    admin_parser.add_argument('username', help='Admin username')

    listen_parser = subparsers.add_parser('listen', help='Listen to the station')
    listen_parser.add_argument(
        '--server',
        dest='server_url',
        help='Server base URL (default from config)'
    )

    args = parser.parse_args()

    if args.subcommand == 'serve':
        sys.exit(run_serve(args.host, args.port, reload=args.reload))

    elif args.subcommand == 'init-db':
        sys.exit(run_init_db())

    elif args.subcommand == 'create-admin':
        sys.exit(run_create_admin(args.username))

    elif args.subcommand == 'listen':
        sys.exit(run_listen(args.server_url))

    parser.print_help()
    sys.exit(1)


if __name__ == '__main__':
    main()
