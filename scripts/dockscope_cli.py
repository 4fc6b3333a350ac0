#!/usr/bin/env python3
"""
Command-line access to a running DockScope API.

Usage:
    python scripts/dockscope_cli.py containers [--all]
    python scripts/dockscope_cli.py images
    python scripts/dockscope_cli.py volumes
    python scripts/dockscope_cli.py summary
    python scripts/dockscope_cli.py action CONTAINER {start,stop,restart,pause,unpause}

Set DOCKSCOPE_API to point at a backend other than http://localhost:8000.
"""

import argparse
import json
import os
import sys
import urllib.error
import urllib.parse
import urllib.request

API_BASE = os.environ.get("DOCKSCOPE_API", "http://localhost:8000")
ACTIONS = ["start", "stop", "restart", "pause", "unpause"]


def api_request(method: str, endpoint: str, data: dict | None = None):
    """Make an API request and return JSON response."""
    url = f"{API_BASE}{endpoint}"
    headers = {"Content-Type": "application/json"}

    body = json.dumps(data).encode("utf-8") if data is not None else None

    req = urllib.request.Request(url, data=body, headers=headers, method=method)

    try:
        with urllib.request.urlopen(req, timeout=60) as response:
            return json.loads(response.read().decode("utf-8"))
    except urllib.error.HTTPError as e:
        error_body = e.read().decode("utf-8")
        try:
            error_json = json.loads(error_body)
            detail = error_json.get("error") or error_json.get("detail", error_body)
        except json.JSONDecodeError:
            detail = error_body
        print(f"Error {e.code}: {detail}")
        sys.exit(1)
    except urllib.error.URLError as e:
        print(f"Connection error: {e.reason}")
        print(f"Make sure the backend is running at {API_BASE}")
        sys.exit(1)


def format_bytes(value: int) -> str:
    size = float(value)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TiB"


def list_containers(include_all: bool) -> None:
    query = "?" + urllib.parse.urlencode({"all": "true"}) if include_all else ""
    containers = api_request("GET", f"/api/containers{query}")

    if not containers:
        print("No containers")
        return

    for c in containers:
        name = c["names"][0].lstrip("/") if c.get("names") else c["id"][:12]
        print(f"{c['id'][:12]}  {name:<30} {c['state']:<10} {c['image']}")


def list_images() -> None:
    images = api_request("GET", "/api/images")
    for image in images:
        tags = ", ".join(image.get("repo_tags") or []) or "<none>"
        print(f"{image['id'][:19]}  {format_bytes(image['size']):>10}  {tags}")


def list_volumes() -> None:
    volumes = api_request("GET", "/api/volumes")
    for volume in volumes:
        print(f"{volume['name']:<40} {volume['driver']}")


def show_summary() -> None:
    summary = api_request("GET", "/api/system/summary")

    print(f"Containers: {summary['containers_total']} "
          f"({summary['containers_running']} running, {summary['containers_stopped']} stopped)")
    print(f"Images: {summary['images_count']}")
    print(f"Volumes: {summary['volumes_count']}")
    print(f"CPU: {summary['cpu_percent_total']:.2f}%")
    print(f"Memory: {format_bytes(summary['memory_usage_bytes'])} / "
          f"{format_bytes(summary['memory_limit_bytes'])}")

    top = summary.get("top_containers_by_memory") or []
    if top:
        print("Top containers by memory:")
        for entry in top:
            percent = entry.get("memory_percent", 0.0)
            print(f"  - {entry['name']}: {format_bytes(entry['memory_usage'])} ({percent:.2f}%)")


def container_action(container_id: str, action: str) -> None:
    print(f"Running '{action}' on container '{container_id}'...")
    encoded = urllib.parse.quote(container_id, safe="")
    result = api_request("POST", f"/api/containers/{encoded}/action", {"action": action})
    print("OK" if result.get("ok") else f"Unexpected response: {result}")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="DockScope command-line client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # containers
    p_containers = subparsers.add_parser("containers", help="List containers")
    p_containers.add_argument("--all", "-a", action="store_true", help="Include stopped containers")

    subparsers.add_parser("images", help="List images")
    subparsers.add_parser("volumes", help="List volumes")
    subparsers.add_parser("summary", help="Show host summary")

    # action
    p_action = subparsers.add_parser("action", help="Run a lifecycle action on a container")
    p_action.add_argument("container", help="Container id or name")
    p_action.add_argument("action", choices=ACTIONS, help="Action to run")

    args = parser.parse_args()

    if args.command == "containers":
        list_containers(args.all)
    elif args.command == "images":
        list_images()
    elif args.command == "volumes":
        list_volumes()
    elif args.command == "summary":
        show_summary()
    elif args.command == "action":
        container_action(args.container, args.action)


if __name__ == "__main__":
    main()
