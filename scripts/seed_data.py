"""Seed a running Notes API with sample notes.

Creates a handful of notes with overlapping tags so the ?tag= and ?q=
filters have something to work with.

Usage:
    python scripts/seed_data.py [--base-url http://localhost:3000]
"""

from __future__ import annotations

import argparse
import sys

import requests

DEFAULT_BASE_URL = "http://localhost:3000"
TIMEOUT = 10


# Each entry: (title, content, tags)
NOTES: list[tuple[str, str, list[str]]] = [
    (
        "Project Ideas",
        "Build a code review assistant that runs static analysis on every push.",
        ["ideas", "tooling"],
    ),
    (
        "Meeting Notes",
        "Discussed migrating the monolith to services. Key decision: keep the "
        "notes service as a single process with file persistence.",
        ["meetings", "architecture"],
    ),
    (
        "Reading List",
        "Designing Data-Intensive Applications; The Pragmatic Programmer.",
        ["reading", "books"],
    ),
    (
        "Grocery List",
        "Eggs, milk, bread, coffee.",
        ["personal"],
    ),
    (
        "Python Tips",
        "Prefer pathlib over os.path; use list comprehensions for simple filters.",
        ["python", "tips"],
    ),
    (
        "Architecture Review",
        "Revisit the persistence layer: whole-file overwrite is fine for now.",
        ["architecture", "review"],
    ),
]


def check_health(base_url: str) -> bool:
    """Verify the API is reachable and healthy."""
    try:
        resp = requests.get(f"{base_url}/health", timeout=TIMEOUT)
        return resp.json().get("status") == "healthy"
    except (requests.RequestException, ValueError) as e:
        print(f"  Health check failed: {e}")
        return False


def create_note(base_url: str, title: str, content: str, tags: list[str]) -> dict:
    """POST /notes and return the created note."""
    resp = requests.post(
        f"{base_url}/notes",
        json={"title": title, "content": content, "tags": tags},
        timeout=TIMEOUT,
    )
    resp.raise_for_status()
    return resp.json()


def main() -> None:
    """Create all sample notes sequentially."""
    parser = argparse.ArgumentParser(description="Seed the Notes API with sample notes")
    parser.add_argument(
        "--base-url",
        default=DEFAULT_BASE_URL,
        help=f"Notes API base URL (default: {DEFAULT_BASE_URL})",
    )
    args = parser.parse_args()
    base_url = args.base_url.rstrip("/")

    print(f"\n  Seeding notes via {base_url}")

    if not check_health(base_url):
        print("  FAIL: Notes API is not healthy. Is the server running?")
        sys.exit(1)

    failures = 0
    for i, (title, content, tags) in enumerate(NOTES, 1):
        try:
            note = create_note(base_url, title, content, tags)
            print(f"  [{i}/{len(NOTES)}] #{note['id']} {note['title']}  tags={note['tags']}")
        except requests.RequestException as e:
            failures += 1
            print(f"  [{i}/{len(NOTES)}] ERROR: {title}: {e}")

    print(f"\n  Done. {len(NOTES) - failures}/{len(NOTES)} notes created.")
    if failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
