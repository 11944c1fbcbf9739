"""
Locust load test suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Many buyers, few tickets
  locust -f locustfile.py --tags throughput   # Event listing cache
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All of the above

Creating events needs an organizer account, taken from ORGANIZER_EMAIL and
ORGANIZER_PASSWORD, plus at least one existing category.
"""

import os
import random
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag

ORGANIZER_EMAIL = os.getenv("ORGANIZER_EMAIL", "organizer@example.com")
ORGANIZER_PASSWORD = os.getenv("ORGANIZER_PASSWORD", "organizer123")
CONCURRENCY_TICKETS = int(os.getenv("CONCURRENCY_TICKETS", "10"))

EVENT_IDS = []
CONCURRENCY_EVENT_ID = None


def random_email():
    return f"load_{random.randint(100000, 999999)}@test.com"


def register(client) -> dict:
    """Register a throwaway buyer and return auth headers (empty on failure)."""
    resp = client.post("/api/v1/auth/register", json={
        "email": random_email(),
        "password": "test123",
        "first_name": "Load",
        "last_name": "Tester",
    }, name="/api/v1/auth/register")
    if resp.status_code == 201:
        return {"Authorization": f"Bearer {resp.json()['token']}"}
    return {}


def event_payload(category_id: int, tickets: int) -> dict:
    future = datetime.now(timezone.utc) + timedelta(days=random.randint(1, 90))
    return {
        "title": f"Load Event {random.randint(1, 100000)}",
        "description": "Load test event",
        "location": "Venue",
        "event_date": future.isoformat(),
        "price": "20.00",
        "available_tickets": tickets,
        "category_id": category_id,
    }


class ConcurrencyUser(HttpUser):
    """
    Many buyers against one event with CONCURRENCY_TICKETS tickets.

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    Afterwards:
      SELECT SUM(quantity) FROM tickets WHERE event_id = X;
    must equal the starting capacity minus events.available_tickets.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        global CONCURRENCY_EVENT_ID
        self.headers = register(self.client)

        if CONCURRENCY_EVENT_ID is None:
            login = self.client.post("/api/v1/auth/login", json={
                "email": ORGANIZER_EMAIL,
                "password": ORGANIZER_PASSWORD,
            })
            categories = self.client.get("/api/v1/categories/").json()
            if login.status_code == 200 and categories:
                resp = self.client.post(
                    "/api/v1/events/",
                    json=event_payload(categories[0]["id"], CONCURRENCY_TICKETS),
                    headers={"Authorization": f"Bearer {login.json()['token']}"},
                )
                if resp.status_code == 201:
                    CONCURRENCY_EVENT_ID = resp.json()["id"]
                    print(f"\n✓ Created event {CONCURRENCY_EVENT_ID} with {CONCURRENCY_TICKETS} tickets\n")

    @tag("concurrency")
    @task
    def buy_scarce_tickets(self):
        if not CONCURRENCY_EVENT_ID or not self.headers:
            return

        with self.client.post(
            "/api/v1/tickets/",
            json={"event_id": CONCURRENCY_EVENT_ID, "quantity": 1},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 400:
                resp.success()  # Sold out
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    Event listing throughput.

    Run once with Redis and once with REDIS_ENABLED=false, then compare
    requests/sec and P95/P99. Every sale clears the listing cache, so mixing
    this with the concurrency scenario shows the cost of invalidation.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events(self):
        page = random.randint(1, 5)
        resp = self.client.get(
            f"/api/v1/events/?page={page}&limit=10", name="/api/v1/events/ [list]"
        )
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}", name="/api/v1/events/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    Bad input must come back as 4xx, never 5xx.

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = register(self.client)

    def _expect(self, payload, allowed, headers=None):
        with self.client.post(
            "/api/v1/tickets/",
            json=payload,
            headers=self.headers if headers is None else headers,
            catch_response=True,
            name="/api/v1/tickets/ [edge]",
        ) as resp:
            if resp.status_code in allowed:
                resp.success()
            else:
                resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_event(self):
        self._expect({"event_id": 999999, "quantity": 1}, [404])

    @tag("edge")
    @task
    def negative_quantity(self):
        self._expect({"event_id": 1, "quantity": -5}, [400])

    @tag("edge")
    @task
    def zero_quantity(self):
        self._expect({"event_id": 1, "quantity": 0}, [400])

    @tag("edge")
    @task
    def huge_quantity(self):
        self._expect({"event_id": 1, "quantity": 999999}, [400, 404])

    @tag("edge")
    @task
    def fractional_quantity(self):
        self._expect({"event_id": 1, "quantity": 1.5}, [400])

    @tag("edge")
    @task
    def missing_auth(self):
        self._expect({"event_id": 1, "quantity": 1}, [401], headers={})


class RealisticUser(HttpUser):
    """
    Mixed workload: mostly browsing, some purchases, a look at own tickets.

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = register(self.client)

    @task(50)
    def browse_events(self):
        resp = self.client.get("/api/v1/events/?page=1&limit=10")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}", name="/api/v1/events/{id}")

    @task(10)
    def buy_tickets(self):
        if EVENT_IDS and self.headers:
            with self.client.post(
                "/api/v1/tickets/",
                json={"event_id": random.choice(EVENT_IDS), "quantity": random.randint(1, 3)},
                headers=self.headers,
                catch_response=True,
            ) as resp:
                if resp.status_code in (201, 400, 404):
                    resp.success()
                else:
                    resp.failure(f"Unexpected: {resp.status_code}")

    @task(5)
    def my_tickets(self):
        if self.headers:
            self.client.get("/api/v1/tickets/user", headers=self.headers)
