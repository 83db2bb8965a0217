"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test double booking
  locust -f locustfile.py --tags throughput   # Test search cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
import string
from datetime import date, timedelta

from locust import HttpUser, task, between, tag, events

# Shared state
LISTING_IDS = []
CONCURRENCY_LISTING_ID = None
CONCURRENCY_START = date.today() + timedelta(days=60)
CONCURRENCY_END = CONCURRENCY_START + timedelta(days=3)
PASSWORD = "loadtest-password"


def random_email():
    return f"load_{random.randint(100000, 999999)}@test.com"


def random_name():
    return "User " + "".join(random.choices(string.ascii_lowercase, k=8))


def listing_payload(title: str) -> dict:
    return {
        "title": title,
        "description": "Load test listing with a very ordinary description.",
        "price": f"{random.randint(40, 400)}.00",
        "address": f"{random.randint(1, 200)} Test Street",
        "city": random.choice(["Lisbon", "Porto", "Chamonix", "Berlin"]),
        "country": random.choice(["Portugal", "France", "Germany"]),
        "images": ["https://img.example.com/load.jpg"],
        "max_guests": random.randint(1, 8),
    }


def sign_up(client, is_host: bool = False) -> dict:
    """Register and log in a fresh account; returns auth headers or {}."""
    email = random_email()
    client.post("/api/v1/auth/register", json={
        "email": email,
        "name": random_name(),
        "password": PASSWORD,
        "is_host": is_host,
    })
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    if resp.status_code == 200:
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}
    return {}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"Concurrency stay: [{CONCURRENCY_START}, {CONCURRENCY_END})")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - every user requests the same stay on one listing

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM reservations
      WHERE listing_id = X AND status <> 'cancelled';
    Should be exactly 1
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        global CONCURRENCY_LISTING_ID
        if CONCURRENCY_LISTING_ID is None:
            host_headers = sign_up(self.client, is_host=True)
            resp = self.client.post(
                "/api/v1/listings/",
                json=listing_payload("Concurrency Test Listing"),
                headers=host_headers,
            )
            if resp.status_code == 201 and CONCURRENCY_LISTING_ID is None:
                CONCURRENCY_LISTING_ID = resp.json()["id"]
                print(f"\nCreated listing {CONCURRENCY_LISTING_ID}\n")
        self.headers = sign_up(self.client)

    @tag("concurrency")
    @task
    def book_same_stay(self):
        """All users fight for the same three nights."""
        if not CONCURRENCY_LISTING_ID or not self.headers:
            return

        with self.client.post(
            "/api/v1/bookings/",
            json={
                "listing_id": CONCURRENCY_LISTING_ID,
                "start_date": CONCURRENCY_START.isoformat(),
                "end_date": CONCURRENCY_END.isoformat(),
            },
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 400 and resp.json().get("code") == "dates_unavailable":
                resp.success()  # Expected: already booked
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - search cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare avg response time, requests/sec and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def search_listings_cached(self):
        page = random.randint(1, 5)
        self.client.get(
            f"/api/v1/listings/?page={page}&page_size=20",
            name="/api/v1/listings/ [cached]",
        )

    @tag("throughput", "read")
    @task(5)
    def search_by_location(self):
        city = random.choice(["lisbon", "porto", "chamonix"])
        self.client.get(f"/api/v1/listings/?location={city}", name="/api/v1/listings/?location")

    @tag("throughput", "read")
    @task(3)
    def get_listing_detail(self):
        if LISTING_IDS:
            self.client.get(f"/api/v1/listings/{random.choice(LISTING_IDS)}", name="/api/v1/listings/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = sign_up(self.client)

    def _expect(self, payload, allowed, headers=None, **kwargs):
        with self.client.post(
            "/api/v1/bookings/",
            json=payload,
            headers=self.headers if headers is None else headers,
            catch_response=True,
            **kwargs,
        ) as resp:
            if resp.status_code in allowed:
                resp.success()
            else:
                resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_listing(self):
        start = date.today() + timedelta(days=10)
        self._expect(
            {"listing_id": 999999, "start_date": start.isoformat(), "end_date": (start + timedelta(days=1)).isoformat()},
            [404],
        )

    @tag("edge")
    @task
    def reversed_dates(self):
        start = date.today() + timedelta(days=10)
        self._expect(
            {"listing_id": 1, "start_date": start.isoformat(), "end_date": (start - timedelta(days=2)).isoformat()},
            [400],
        )

    @tag("edge")
    @task
    def past_dates(self):
        start = date.today() - timedelta(days=30)
        self._expect(
            {"listing_id": 1, "start_date": start.isoformat(), "end_date": (start + timedelta(days=2)).isoformat()},
            [400],
        )

    @tag("edge")
    @task
    def garbage_dates(self):
        self._expect({"listing_id": 1, "start_date": "tomorrow", "end_date": "later"}, [422])

    @tag("edge")
    @task
    def missing_auth(self):
        start = date.today() + timedelta(days=10)
        self._expect(
            {"listing_id": 1, "start_date": start.isoformat(), "end_date": (start + timedelta(days=1)).isoformat()},
            [401],
            headers={},
        )


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic: mostly searching, some bookings, the odd
    cancellation and a rare new listing.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.is_host = random.random() < 0.1
        self.headers = sign_up(self.client, is_host=self.is_host)
        self.reservation_ids = []

    @task(50)
    def browse_listings(self):
        resp = self.client.get("/api/v1/listings/?page=1&page_size=20")
        if resp.status_code == 200:
            for listing in resp.json().get("listings", []):
                if listing["id"] not in LISTING_IDS:
                    LISTING_IDS.append(listing["id"])

    @task(20)
    def view_listing(self):
        if LISTING_IDS:
            self.client.get(f"/api/v1/listings/{random.choice(LISTING_IDS)}", name="/api/v1/listings/{id}")

    @task(10)
    def book_stay(self):
        if not LISTING_IDS or not self.headers:
            return
        start = date.today() + timedelta(days=random.randint(1, 180))
        with self.client.post(
            "/api/v1/bookings/",
            json={
                "listing_id": random.choice(LISTING_IDS),
                "start_date": start.isoformat(),
                "end_date": (start + timedelta(days=random.randint(1, 7))).isoformat(),
            },
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                self.reservation_ids.append(resp.json()["id"])
                resp.success()
            elif resp.status_code == 400:
                resp.success()  # Dates taken, or own listing
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @task(3)
    def my_bookings(self):
        if self.headers:
            self.client.get("/api/v1/bookings/mine", headers=self.headers)

    @task(2)
    def cancel_booking(self):
        if self.reservation_ids:
            reservation_id = self.reservation_ids.pop()
            self.client.patch(
                f"/api/v1/bookings/{reservation_id}/cancel",
                headers=self.headers,
                name="/api/v1/bookings/{id}/cancel",
            )

    @task(3)
    def create_listing(self):
        if self.is_host and self.headers:
            resp = self.client.post(
                "/api/v1/listings/",
                json=listing_payload(f"Listing {random.randint(1, 10000)}"),
                headers=self.headers,
            )
            if resp.status_code == 201:
                LISTING_IDS.append(resp.json()["id"])
