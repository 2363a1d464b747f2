# cli.py
import argparse
import sys
from typing import Any, Dict, Optional

import requests

from config import load_settings

TIMEOUT = 10


class ApiError(Exception):
    pass


def _request(method: str, url: str, payload: Optional[Dict[str, Any]] = None) -> Any:
    """Sends one request to the API and returns the decoded JSON body."""
    try:
        response = requests.request(method, url, json=payload, timeout=TIMEOUT)
    except requests.RequestException as e:
        raise ApiError(f"Request failed: {e}") from e

    if response.status_code >= 400:
        try:
            message = response.json().get("error")
        except ValueError:
            message = None
        raise ApiError(message or f"HTTP {response.status_code}")
    return response.json()


def format_task(task: Dict[str, Any]) -> str:
    mark = "x" if task.get("completed") else " "
    return f"[{mark}] {task['id']}  {task['text']}"


def list_tasks(api_url: str):
    tasks = _request("GET", f"{api_url}/tasks")
    if not tasks:
        print("No tasks.")
        return
    for task in tasks:
        print(format_task(task))


def add_task(api_url: str, text: str):
    text = text.strip()
    if not text:
        raise ApiError("text is required")
    print(format_task(_request("POST", f"{api_url}/tasks", {"text": text})))


def set_completed(api_url: str, task_id: int, completed: bool):
    print(format_task(_request("PUT", f"{api_url}/tasks/{task_id}", {"completed": completed})))


def edit_task(api_url: str, task_id: int, text: str):
    text = text.strip()
    if not text:
        raise ApiError("text is required")
    print(format_task(_request("PUT", f"{api_url}/tasks/{task_id}", {"text": text})))


def delete_task(api_url: str, task_id: int):
    task = _request("DELETE", f"{api_url}/tasks/{task_id}")
    print(f"Deleted: {format_task(task)}")


def main(argv=None):
    """Command line client for the tasks API."""
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Manage the task list through the tasks API.")
    parser.add_argument("--api-url", type=str, default=settings.api_url, help="Base URL of the tasks API.")
    subparsers = parser.add_subparsers(dest='command', required=True, help='Available commands')

    subparsers.add_parser('list', help='List all tasks.')

    parser_add = subparsers.add_parser('add', help='Add a task.')
    parser_add.add_argument('text', type=str)

    parser_done = subparsers.add_parser('done', help='Mark a task as completed.')
    parser_done.add_argument('id', type=int)

    parser_undo = subparsers.add_parser('undo', help='Mark a task as not completed.')
    parser_undo.add_argument('id', type=int)

    parser_edit = subparsers.add_parser('edit', help="Change a task's text.")
    parser_edit.add_argument('id', type=int)
    parser_edit.add_argument('text', type=str)

    parser_delete = subparsers.add_parser('delete', help='Delete a task.')
    parser_delete.add_argument('id', type=int)

    args = parser.parse_args(argv)
    api_url = args.api_url.rstrip("/")

    try:
        if args.command == 'list':
            list_tasks(api_url)
        elif args.command == 'add':
            add_task(api_url, args.text)
        elif args.command == 'done':
            set_completed(api_url, args.id, True)
        elif args.command == 'undo':
            set_completed(api_url, args.id, False)
        elif args.command == 'edit':
            edit_task(api_url, args.id, args.text)
        elif args.command == 'delete':
            delete_task(api_url, args.id)
    except ApiError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
