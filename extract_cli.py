"""
Page Extraction CLI

Command-line interface for the page extraction service.

Usage:
    # Run the HTTP API (settings from environment / .env)
    python extract_cli.py serve --port 8000

    # Upload a PDF
    python extract_cli.py upload report.pdf

    # Build a new PDF from pages 1, 3 and 4
    python extract_cli.py extract uploads/report.pdf 3 1 4

    # Download a stored file
    python extract_cli.py get generated/report-<token>.pdf --output out.pdf

    # Use an S3 bucket instead of local storage
    python extract_cli.py --backend s3 --bucket my-bucket info
"""

import argparse
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from src.common.config import ServiceConfig, configure_logging
from src.common.errors import DocumentServiceError
from src.extraction.service import PageExtractionService, PDF_MEDIA_TYPE
from src.storage.factory import create_storage


def _load_config(args) -> ServiceConfig:
    """Environment settings with command-line overrides applied."""
    env = dict(os.environ)
    overrides = {
        'STORAGE_BACKEND': args.backend,
        'STORAGE_PATH': args.path,
        'S3_BUCKET': args.bucket,
        'S3_REGION': args.region,
        'S3_ENDPOINT': args.endpoint,
    }
    env.update({k: v for k, v in overrides.items() if v is not None})
    return ServiceConfig.from_env(env)


def _create_service(config: ServiceConfig) -> PageExtractionService:
    return PageExtractionService.from_config(config, create_storage(config))


def cmd_serve(args, config: ServiceConfig):
    """Run the HTTP API."""
    import uvicorn
    from src.api.app import create_app

    host = args.host or config.host
    port = args.port or config.port
    app = create_app(config)
    print(f"Server running at http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)


def cmd_upload(args, config: ServiceConfig):
    """Upload a PDF to storage."""
    service = _create_service(config)
    path = Path(args.file)
    result = service.upload(path.name, path.read_bytes(), args.content_type)
    print(f"[OK] Uploaded: {result.locator}")
    print(f"  Size: {result.size} bytes")


def cmd_extract(args, config: ServiceConfig):
    """Build a new PDF from selected pages."""
    service = _create_service(config)
    result = service.extract_pages(args.reference, args.pages)
    print(f"[OK] Created: {result.locator}")
    print(f"  Name: {result.generated_name}")


def cmd_get(args, config: ServiceConfig):
    """Download stored content."""
    service = _create_service(config)
    data, _ = service.download(args.reference)

    if args.output:
        Path(args.output).write_bytes(data)
        print(f"[OK] Downloaded to: {args.output}")
    else:
        sys.stdout.buffer.write(data)


def cmd_info(args, config: ServiceConfig):
    """Display storage backend information."""
    storage = create_storage(config)

    print("\n=== Storage Information ===")
    for key, value in storage.get_storage_info().items():
        print(f"{key}: {value}")
    print()


def main():
    """Main CLI entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(description="PDF Page Extraction CLI")

    # Global options (override environment)
    parser.add_argument('--backend', choices=['s3', 'local'], help='Storage backend')
    parser.add_argument('--path', help='Local storage path')
    parser.add_argument('--bucket', help='S3 bucket name')
    parser.add_argument('--region', help='S3 region')
    parser.add_argument('--endpoint', help='S3 endpoint URL')
    parser.add_argument('--log-level', help='Logging level (default: LOG_LEVEL or INFO)')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    serve_parser = subparsers.add_parser('serve', help='Run the HTTP API')
    serve_parser.add_argument('--host', help='Host to bind to')
    serve_parser.add_argument('--port', type=int, help='Port to bind to')

    upload_parser = subparsers.add_parser('upload', help='Upload a PDF')
    upload_parser.add_argument('file', help='PDF file to upload')
    upload_parser.add_argument('--content-type', default=PDF_MEDIA_TYPE, help='Declared content type')

    extract_parser = subparsers.add_parser('extract', help='Build a PDF from selected pages')
    extract_parser.add_argument('reference', help='Locator of an uploaded PDF')
    extract_parser.add_argument('pages', type=int, nargs='+', help='1-based page numbers')

    get_parser = subparsers.add_parser('get', help='Download stored content')
    get_parser.add_argument('reference', help='Locator of a stored file')
    get_parser.add_argument('--output', help='Output file (stdout if not specified)')

    subparsers.add_parser('info', help='Display storage information')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        config = _load_config(args)
        configure_logging(args.log_level or config.log_level)
    except ValueError as e:
        print(f"[ERROR] Invalid configuration: {e}")
        sys.exit(2)

    command_handlers = {
        'serve': cmd_serve,
        'upload': cmd_upload,
        'extract': cmd_extract,
        'get': cmd_get,
        'info': cmd_info,
    }

    try:
        command_handlers[args.command](args, config)
    except DocumentServiceError as e:
        print(f"[ERROR] {e.kind}: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
