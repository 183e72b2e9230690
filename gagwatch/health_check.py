#!/usr/bin/env python
"""
Health check script for GAG Drop Watch.

Exits with code 0 if the bot reports healthy, non-zero otherwise.
Used by Docker health checks.
"""
import sys
import argparse
import requests
import json
import time
from urllib.parse import urljoin


def check_health(base_url="http://localhost:8080", retries=3, retry_delay=1.0, verbose=False):
    """Check health of the bot, retrying with exponential backoff."""
    health_url = urljoin(base_url, "/health")

    for attempt in range(retries):
        try:
            response = requests.get(health_url, timeout=5)
            health_data = response.json()
            status = health_data.get("status")

            if verbose:
                print(json.dumps(health_data, indent=2))

            # warning and degraded still answer 200
            if response.status_code == 200 and status == "healthy":
                print("Service is healthy")
                return True
            if response.status_code == 200:
                print(f"Service is running but not healthy: {status}")
                return False

            print(f"Health check failed with status code: {response.status_code}")
        except (requests.RequestException, ValueError) as e:
            print(f"Health check failed: {e}")

        if attempt < retries - 1:
            print(f"Retrying in {retry_delay} seconds...")
            time.sleep(retry_delay)
            retry_delay *= 2

    return False


def check_status(base_url="http://localhost:8080"):
    """Print the status endpoint."""
    try:
        response = requests.get(urljoin(base_url, "/status"), timeout=5)
        if response.status_code == 200:
            print(json.dumps(response.json(), indent=2))
            return True
        print(f"Status check failed with status code: {response.status_code}")
        return False
    except (requests.RequestException, ValueError) as e:
        print(f"Status check failed: {e}")
        return False


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Health check tool for GAG Drop Watch')
    parser.add_argument('--url', default='http://localhost:8080',
                        help='Base URL for health check (default: http://localhost:8080)')
    parser.add_argument('--status', action='store_true',
                        help='Print the status endpoint instead of checking health')
    parser.add_argument('--verbose', action='store_true',
                        help='Print the health response body')
    parser.add_argument('--retries', type=int, default=3,
                        help='Number of retry attempts (default: 3)')
    parser.add_argument('--retry-delay', type=float, default=1.0,
                        help='Initial delay between retries in seconds (default: 1.0)')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    if args.status:
        ok = check_status(args.url)
    else:
        ok = check_health(args.url, retries=args.retries, retry_delay=args.retry_delay, verbose=args.verbose)
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
