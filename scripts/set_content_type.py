#!/usr/bin/env python3
"""
Rewrite the content type of every object in an object store container.

An administrative correction for objects uploaded with a missing or wrong
content type. Not part of the normal write path.

Usage:
    python scripts/set_content_type.py images image/jpeg

Requires:
    - .env file with OBJECT_STORE_CONNECTION_STRING (or OBJECT_STORE_MOCK_MODE)
"""

import logging
import sys
from pathlib import Path

# Add the project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from mirrorfs.config.settings import get_settings
from mirrorfs.core.errors import ConfigurationError
from mirrorfs.dependencies import build_object_store_client
from mirrorfs.infrastructure.storage.client import StorageError


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Set the content type for all objects in a container')
    parser.add_argument('container', help='Container (bucket) name')
    parser.add_argument('content_type', help='Content type to set, e.g. image/jpeg')
    args = parser.parse_args()

    settings = get_settings()

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=settings.log_level.upper(),
    )

    try:
        client = build_object_store_client(settings)
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    if client is None:
        print("ERROR: No object store configured. Set OBJECT_STORE_CONNECTION_STRING.")
        sys.exit(1)

    try:
        count = client.set_content_type_for_container(args.container, args.content_type)
    except StorageError as e:
        print(f"ERROR updating content types: {e}")
        sys.exit(1)

    print(f"Updated {count} objects in '{args.container}' to {args.content_type}")
    sys.exit(0)


if __name__ == '__main__':
    main()
