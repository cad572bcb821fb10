"""Lightweight REST client for the golfweights API."""

from __future__ import annotations

import argparse
import json

import httpx


def main() -> None:
    parser = argparse.ArgumentParser(description="Interact with the golfweights REST API")
    parser.add_argument("base_url", help="Base URL of the API, e.g. http://localhost:8000")
    parser.add_argument("--event", help="Event id to optimize")
    parser.add_argument("--season", help="Season year")
    parser.add_argument("--tournament", help="Tournament name used to find input files")
    parser.add_argument("--seed", help="Seed for a reproducible search")
    parser.add_argument("--tests", type=int, help="Number of search candidates")
    parser.add_argument("--write-templates", action="store_true", help="Write changed templates into the store")
    parser.add_argument("--list-templates", action="store_true", help="List stored templates and exit")
    parser.add_argument("--get-template", metavar="NAME", help="Fetch a stored template and exit")
    parser.add_argument("--list-runs", action="store_true", help="List recent runs and exit")
    parser.add_argument("--get-run", metavar="RUN_ID", help="Fetch a specific run report and exit")
    parser.add_argument("--timeout", type=float, default=600.0, help="Request timeout in seconds")
    args = parser.parse_args()

    with httpx.Client(base_url=args.base_url, timeout=args.timeout) as client:
        if args.list_templates or args.get_template or args.list_runs or args.get_run:
            if args.list_templates:
                resp = client.get("/templates")
                resp.raise_for_status()
                print(json.dumps([item["name"] for item in resp.json()], indent=2))
            if args.get_template:
                resp = client.get(f"/templates/{args.get_template}")
                if resp.status_code == 404:
                    raise SystemExit(f"template {args.get_template} not found")
                resp.raise_for_status()
                print(json.dumps(resp.json(), indent=2))
            if args.list_runs:
                resp = client.get("/runs")
                resp.raise_for_status()
                print(json.dumps(resp.json(), indent=2))
            if args.get_run:
                resp = client.get(f"/runs/{args.get_run}")
                if resp.status_code == 404:
                    raise SystemExit(f"run {args.get_run} not found")
                resp.raise_for_status()
                print(json.dumps(resp.json(), indent=2))
            return

        if not args.event:
            raise SystemExit("--event is required unless using --list-templates/--get-template/--list-runs/--get-run")

        payload = {
            "event_id": args.event,
            "season": args.season,
            "tournament": args.tournament,
            "opt_seed": args.seed,
            "tests": args.tests,
            "dry_run": not args.write_templates,
        }
        resp = client.post("/runs", json={key: value for key, value in payload.items() if value is not None})
        if resp.status_code == 400:
            raise SystemExit(resp.json().get("detail", "run failed"))
        resp.raise_for_status()
        result = resp.json()
        print(f"Run {result['run_id']} ({result['mode']}) for event {result['event_id']}")
        if result.get("recommendation"):
            print(f"Recommendation: {result['recommendation']}")
        for write in result.get("template_writes") or []:
            print(f"Template {write['name']}: {write['action']}")
        print(f"Report: {result['report_json']}")


if __name__ == "__main__":
    main()
