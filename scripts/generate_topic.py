#!/usr/bin/env python3
"""Generate a hard-to-guess ntfy topic name.

ntfy topics are public to anyone who knows the name, so the suffix is
random.

Usage::

    python scripts/generate_topic.py --base my-service-alerts
"""

from __future__ import annotations

import argparse
import secrets


def generate_topic(base: str) -> str:
    """Return ``<base>-<16 hex chars>``."""
    return f"{base}-{secrets.token_hex(8)}"


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a random ntfy topic name.")
    parser.add_argument("--base", default="service-alerts", help="Topic prefix")
    args = parser.parse_args()

    topic = generate_topic(args.base)
    print()
    print("Generated ntfy topic name:")
    print(topic)
    print()
    print("Subscribe to it in the ntfy app and set ntfy.topic in config/settings.yaml.")
    print("Test it with:")
    print(f'  curl -d "Test" https://ntfy.sh/{topic}')


if __name__ == "__main__":
    main()
