"""
Populate a running Taskboard API with fake users and tasks.

Goes through the HTTP endpoints so pendingTasks is maintained by the API
itself. Usage:
    python -m taskboard.scripts.db_fill -u 20 -t 100 --url http://localhost:8000/api
"""
import argparse
import random
import sys
from datetime import datetime, timedelta, timezone

import httpx
from faker import Faker

from taskboard.utils.params import to_epoch_ms

fake = Faker()


def fill(client: httpx.Client, user_count: int, task_count: int) -> tuple[int, int]:
    user_ids = []
    for _ in range(user_count):
        response = client.post("/users", json={"name": fake.name(), "email": fake.unique.email()})
        if response.status_code != 201:
            print(f"[FILL] User rejected ({response.status_code}): {response.json()['message']}")
            continue
        user_ids.append(response.json()["data"]["_id"])

    created_tasks = 0
    for _ in range(task_count):
        deadline = datetime.now(timezone.utc) + timedelta(days=random.randint(-30, 90))
        payload = {
            "name": fake.catch_phrase(),
            "description": fake.sentence(nb_words=12),
            "deadline": to_epoch_ms(deadline),
            "completed": random.random() < 0.3,
        }
        # Leave some tasks unassigned
        if user_ids and random.random() < 0.6:
            payload["assignedUser"] = random.choice(user_ids)
        response = client.post("/tasks", json=payload)
        if response.status_code != 201:
            print(f"[FILL] Task rejected ({response.status_code}): {response.json()['message']}")
            continue
        created_tasks += 1

    return len(user_ids), created_tasks


def main(argv=None):
    parser = argparse.ArgumentParser(description="Fill the Taskboard API with fake data")
    parser.add_argument("-u", "--users", type=int, default=20)
    parser.add_argument("-t", "--tasks", type=int, default=100)
    parser.add_argument("--url", default="http://localhost:8000/api")
    args = parser.parse_args(argv)

    with httpx.Client(base_url=args.url, timeout=10) as client:
        try:
            users, tasks = fill(client, args.users, args.tasks)
        except httpx.HTTPError as e:
            print(f"[FILL] Could not reach {args.url}: {e}")
            return 1
    print(f"[FILL] Created {users} users and {tasks} tasks at {args.url}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
