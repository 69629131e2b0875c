#!/usr/bin/env python3
"""Smoke test script to verify a running service end to end.

Expects at least one court in the catalog. Identity is sent the way the
upstream session provider would send it.
"""

import requests
from datetime import date, timedelta

BASE_URL = "http://localhost:8000"
PLAYER = {"X-User-Id": "1", "X-User-Role": "PLAYER"}


def check_health():
    """Check health endpoint."""
    print("Checking health endpoint...")
    response = requests.get(f"{BASE_URL}/health")
    print(f"  Status: {response.status_code}")
    print(f"  Response: {response.json()}")
    assert response.status_code == 200
    print("  ✓ Health check passed\n")


def check_courts():
    """Check court listing."""
    print("Checking court listing...")
    response = requests.get(f"{BASE_URL}/courts")
    print(f"  Status: {response.status_code}")
    courts = response.json()
    print(f"  Found {len(courts)} court(s)")
    if courts:
        print(f"  First court: {courts[0]['name']} ({courts[0]['club_name']})")
    print("  ✓ Court listing passed\n")
    return courts


def check_slots(court_id):
    """Check slot listing for tomorrow."""
    print(f"Checking slots for court {court_id}...")
    day = (date.today() + timedelta(days=1)).isoformat()
    response = requests.get(f"{BASE_URL}/courts/{court_id}/slots", params={"date": day})
    print(f"  Status: {response.status_code}")
    assert response.status_code == 200
    slots = response.json()["slots"]
    free = [s for s in slots if s["available"]]
    print(f"  {len(free)}/{len(slots)} slots free")
    print("  ✓ Slot listing passed\n")
    return free


def check_booking(court_id, slot):
    """Book a free slot and list it back."""
    print(f"Booking {slot['local_time']} on court {court_id}...")
    response = requests.post(
        f"{BASE_URL}/bookings",
        json={"court_id": court_id, "start_time": slot["start"], "end_time": slot["end"]},
        headers=PLAYER,
    )
    print(f"  Status: {response.status_code}")
    print(f"  Response: {response.json()}")

    if response.status_code == 201:
        bookings = requests.get(f"{BASE_URL}/bookings", headers=PLAYER).json()
        print(f"  Player now has {len(bookings)} booking(s)")
        print("  ✓ Booking passed\n")
    else:
        print("  ℹ Booking was rejected\n")


def check_wallet():
    """Check wallet balance."""
    print("Checking wallet...")
    response = requests.get(f"{BASE_URL}/wallet", headers=PLAYER)
    print(f"  Status: {response.status_code}")
    assert response.status_code == 200
    print(f"  Balance: {response.json()['balance']}")
    print("  ✓ Wallet passed\n")


def main():
    """Run all checks."""
    print("=" * 60)
    print("PADEL BOOKING - API SMOKE TEST")
    print("=" * 60)
    print()

    try:
        check_health()
        courts = check_courts()
        check_wallet()

        if courts:
            free = check_slots(courts[0]["id"])
            if free:
                check_booking(courts[0]["id"], free[-1])

        print("=" * 60)
        print("ALL CHECKS PASSED! ✓")
        print("=" * 60)
        print()

    except requests.exceptions.ConnectionError:
        print("\n❌ ERROR: Could not connect to the API")
        print("   Make sure the server is running:")
        print("   uvicorn app.main:app --reload")
        print()
    except AssertionError as e:
        print(f"\n❌ CHECK FAILED: {e}")
        print()


if __name__ == "__main__":
    main()
