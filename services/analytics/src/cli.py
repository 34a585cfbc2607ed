"""Command line access to job status.

Usage:
    contextforge jobs get <job_id>
    contextforge jobs watch <job_id> [--profile import|classify|optimize]

The API location and key come from CONTEXTFORGE_API_URL and
CONTEXTFORGE_API_KEY.
"""

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

from src.client.api import ApiError, ContextForgeClient
from src.client.poller import POLL_PROFILES, JobPoller


def _progress_line(job: Dict[str, Any]) -> str:
    total = job.get("totalItems") or 0
    done = job.get("processedItems") or 0
    return f"{job.get('status')}: {job.get('progress', 0)}% ({done}/{total})"


def cmd_get(client: ContextForgeClient, args: argparse.Namespace) -> int:
    job = client.get_job(args.job_id)
    print(json.dumps(job, indent=2, default=str))
    return 0


def cmd_watch(client: ContextForgeClient, args: argparse.Namespace) -> int:
    poller = JobPoller.for_profile(
        args.profile,
        client.get_job,
        on_update=lambda job: print(_progress_line(job), file=sys.stderr),
    )
    result = poller.wait(args.job_id)
    if result.timed_out:
        print(f"Job {args.job_id} is taking longer than expected.", file=sys.stderr)
        print(f"Check its status with: contextforge jobs get {args.job_id}", file=sys.stderr)
        return 2
    if result.status == "failed":
        error = (result.job or {}).get("error") or "Unknown error"
        print(f"Job {args.job_id} failed: {error}", file=sys.stderr)
        return 1
    print(json.dumps(result.results, indent=2, default=str))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="contextforge")
    commands = parser.add_subparsers(dest="command", required=True)

    jobs = commands.add_parser("jobs", help="Inspect background jobs")
    job_commands = jobs.add_subparsers(dest="jobs_command", required=True)

    get = job_commands.add_parser("get", help="Print a job record")
    get.add_argument("job_id")
    get.set_defaults(handler=cmd_get)

    watch = job_commands.add_parser("watch", help="Poll a job until it finishes")
    watch.add_argument("job_id")
    watch.add_argument("--profile", choices=sorted(POLL_PROFILES), default="import")
    watch.set_defaults(handler=cmd_watch)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        with ContextForgeClient() as client:
            return args.handler(client, args)
    except ApiError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
