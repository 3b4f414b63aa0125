#!/usr/bin/env python3
"""
Smoke test script for the EngageHub prediction queue API.
Exercises the queue endpoints in positive flow against a running server.

Usage:
    python -m scripts.smoke_api
    ENGAGEHUB_URL=http://localhost:8000 ADMIN_API_KEY=... python -m scripts.smoke_api
"""

import os
import sys
from typing import Optional

import requests

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from engagehub.auth.service import AuthService

BASE_URL = os.getenv("ENGAGEHUB_URL", "http://localhost:8000")
API_BASE = f"{BASE_URL}/api/v1"
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "")

TEST_USER_ID = "64b7f0c2a1b2c3d4e5f60718"
TEST_CONTENT_ID = "64b7f0c2a1b2c3d4e5f60719"

class Colors:
    GREEN = '\033[92m'
    RED = '\033[91m'
    YELLOW = '\033[93m'
    BLUE = '\033[94m'
    END = '\033[0m'

def print_test(name: str):
    print(f"\n{Colors.BLUE}=== {name} ==={Colors.END}")

def print_success(msg: str):
    print(f"{Colors.GREEN}✓ {msg}{Colors.END}")

def print_error(msg: str):
    print(f"{Colors.RED}✗ {msg}{Colors.END}")

def print_info(msg: str):
    print(f"{Colors.YELLOW}ℹ {msg}{Colors.END}")

def check_health() -> bool:
    """Check health endpoints."""
    print_test("Health Checks")

    try:
        r = requests.get(f"{BASE_URL}/health")
        assert r.status_code == 200
        data = r.json()
        assert data["status"] == "healthy"
        print_success("GET /health - Detailed health check")
        print_info(f"Database: {data.get('database', 'unknown')}")
    except Exception as e:
        print_error(f"GET /health - {str(e)}")
        return False

    try:
        r = requests.get(f"{BASE_URL}/metrics")
        assert r.status_code == 200
        assert "engagehub_job_queue_depth" in r.text
        print_success("GET /metrics - Prometheus exposition")
    except Exception as e:
        print_error(f"GET /metrics - {str(e)}")
        return False

    return True

def check_queue_flow(token: str) -> Optional[str]:
    """Enqueue, fetch, list and cancel. Returns the job id on success."""
    print_test("Prediction Queue Flow")
    headers = {"Authorization": f"Bearer {token}"}

    try:
        r = requests.post(f"{API_BASE}/predictions/queue", json={
            "content_id": TEST_CONTENT_ID,
            "title": "Smoke test video",
            "platform": "youtube",
            "topics": ["smoke"],
        }, headers=headers)
        assert r.status_code == 200, r.text
        job_id = r.json()["job_id"]
        print_success(f"POST /predictions/queue - Job {job_id} queued")
    except Exception as e:
        print_error(f"POST /predictions/queue - {str(e)}")
        return None

    try:
        r = requests.get(f"{API_BASE}/predictions/queue/{job_id}", headers=headers)
        assert r.status_code == 200
        print_success(f"GET /predictions/queue/{{id}} - status={r.json()['status']}")
    except Exception as e:
        print_error(f"GET /predictions/queue/{{id}} - {str(e)}")
        return None

    try:
        r = requests.get(f"{API_BASE}/predictions/queue/my", params={"limit": 5}, headers=headers)
        assert r.status_code == 200
        print_success(f"GET /predictions/queue/my - {r.json()['total']} job(s)")
    except Exception as e:
        print_error(f"GET /predictions/queue/my - {str(e)}")
        return None

    try:
        r = requests.post(f"{API_BASE}/predictions/queue/{job_id}/cancel", headers=headers)
        if r.status_code == 200:
            print_success("POST /predictions/queue/{id}/cancel - Cancelled")
        elif r.status_code == 400:
            print_info(f"Job already picked up by a worker: {r.json()}")
        else:
            raise AssertionError(f"{r.status_code}: {r.text}")
    except Exception as e:
        print_error(f"POST /predictions/queue/{{id}}/cancel - {str(e)}")
        return None

    return job_id

def check_admin_flow() -> bool:
    print_test("Admin Flow")
    if not ADMIN_API_KEY:
        print_info("ADMIN_API_KEY not set, skipping")
        return True
    try:
        r = requests.get(f"{API_BASE}/admin/jobs", params={"status": "pending"},
                         headers={"X-ADMIN-API-KEY": ADMIN_API_KEY})
        assert r.status_code == 200
        print_success(f"GET /admin/jobs - {r.json()['total']} pending job(s)")
    except Exception as e:
        print_error(f"GET /admin/jobs - {str(e)}")
        return False
    return True

def main():
    """Run all checks."""
    print(f"\n{Colors.BLUE}{'='*60}")
    print("EngageHub API - Prediction Queue Smoke Test")
    print(f"{'='*60}{Colors.END}\n")

    print_info(f"Testing against: {BASE_URL}")
    print_info("Make sure the API is running with the same JWT_SECRET_KEY\n")

    if not check_health():
        print_error("\nHealth checks failed. Is the API running?")
        sys.exit(1)

    token = AuthService.create_access_token(TEST_USER_ID, "smoke@engagehub.dev")
    if not check_queue_flow(token):
        print_error("\nQueue flow failed.")
        sys.exit(1)

    if not check_admin_flow():
        print_error("\nAdmin flow had errors.")

    print(f"\n{Colors.GREEN}{'='*60}")
    print("All checks completed!")
    print(f"{'='*60}{Colors.END}\n")

if __name__ == "__main__":
    main()
