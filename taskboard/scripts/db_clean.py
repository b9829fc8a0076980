"""
Delete every user and task from a running Taskboard API.

Usage:
    python -m taskboard.scripts.db_clean --url http://localhost:8000/api
"""
import argparse
import sys

import httpx


def clean(client: httpx.Client) -> dict[str, int]:
    removed = {}
    for resource in ("users", "tasks"):
        # limit=0 lifts the default page size on tasks
        response = client.get(f"/{resource}", params={"select": '{"_id": 1}', "limit": "0"})
        response.raise_for_status()
        ids = [doc["_id"] for doc in response.json()["data"]]
        for record_id in ids:
            client.delete(f"/{resource}/{record_id}").raise_for_status()
        removed[resource] = len(ids)
    return removed


def main(argv=None):
    parser = argparse.ArgumentParser(description="Remove all users and tasks from the Taskboard API")
    parser.add_argument("--url", default="http://localhost:8000/api")
    args = parser.parse_args(argv)

    with httpx.Client(base_url=args.url, timeout=10) as client:
        try:
            removed = clean(client)
        except httpx.HTTPError as e:
            print(f"[CLEAN] Failed against {args.url}: {e}")
            return 1
    print(f"[CLEAN] Removed {removed['users']} users and {removed['tasks']} tasks")
    return 0


if __name__ == "__main__":
    sys.exit(main())
