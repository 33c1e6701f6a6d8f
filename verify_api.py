import requests
import json
import os
import sys

BASE_URL = os.getenv("BASE_URL", "http://localhost:8000/api/v1")
USERNAME = os.getenv("ADMIN_USERNAME", "admin")
PASSWORD = os.getenv("ADMIN_PLAIN_PASSWORD", "admin123")

def print_response(name, response):
    print(f"--- {name} ---")
    print(f"Status: {response.status_code}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)
    print("\n")

def run_verification():
    # 1. Login
    print("1. Logging in...")
    resp = requests.post(f"{BASE_URL}/auth/token", data={
        "username": USERNAME,
        "password": PASSWORD
    })
    print_response("Login", resp)
    if resp.status_code != 200:
        print("Login failed, aborting.")
        sys.exit(1)
    token = resp.json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    # 2. Import links into the pool
    print("2. Importing links...")
    resp = requests.post(f"{BASE_URL}/links/import", headers=headers, json={
        "links": ["https://example.com/claim/a\nhttps://example.com/claim/b", "https://example.com/claim/c"]
    })
    print_response("Import Links", resp)

    # 3. Generate coupons from the pool
    print("3. Generating coupons...")
    resp = requests.post(f"{BASE_URL}/links/generate-coupons", headers=headers, json={
        "count": 2,
        "daysUntilExpiry": 2,
        "sellerName": "verify"
    })
    print_response("Generate Coupons", resp)
    if resp.status_code != 201:
        print("Generation failed, aborting.")
        sys.exit(1)
    code = resp.json()["coupons"][0]["code"]

    # 4. Claim as an anonymous user
    print("4. Claiming coupon...")
    resp = requests.post(f"{BASE_URL}/coupons/claim", json={"code": code})
    print_response("Claim", resp)

    # 5. Second claim must fail
    print("5. Claiming again (Expected Failure)...")
    resp = requests.post(f"{BASE_URL}/coupons/claim", json={"code": code})
    print_response("Claim Again", resp)

    # 6. Stats
    print("6. Fetching stats...")
    resp = requests.get(f"{BASE_URL}/links/stats", headers=headers)
    print_response("Link Stats", resp)
    resp = requests.get(f"{BASE_URL}/analytics/stats", headers=headers)
    print_response("Analytics", resp)

if __name__ == "__main__":
    run_verification()
