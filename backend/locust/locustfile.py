"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test double booking
  locust -f locustfile.py --tags throughput   # Test listing cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests

Approving items needs the bootstrap admin account. Start the API with
ADMIN_USERNAME / ADMIN_PASSWORD / ADMIN_EMAIL set and export the same
username and password to this process.
"""

import os
import random
import string
from locust import HttpUser, task, between, tag, events

ADMIN_USERNAME = os.environ.get("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "adminpassword")
PASSWORD = "loadtest123"

# Shared state
ITEM_IDS = []
CONTESTED_ITEM_ID = None


def random_username():
    return "u_" + "".join(random.choices(string.ascii_lowercase, k=8))


def register_and_login(client):
    """Create a throwaway account and return auth headers (empty on failure)."""
    username = random_username()
    client.post("/api/v1/auth/register", json={
        "username": username,
        "password": PASSWORD,
        "email": f"{username}@load.example.com",
        "name": "Load Tester",
        "address": "1 Load Lane",
        "phone_number": f"+1{random.randint(10**9, 10**10 - 1)}",
    })
    resp = client.post("/api/v1/auth/login", json={"username": username, "password": PASSWORD})
    if resp.status_code != 200:
        return {}
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def admin_headers(client):
    resp = client.post("/api/v1/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    if resp.status_code != 200:
        return {}
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def list_approved_item(client, headers, admin):
    """List an item and have the admin approve it. Returns the item id or None."""
    category = client.get("/api/v1/categories/").json()[0]["id"]
    resp = client.post("/api/v1/items/", json={
        "name": f"Item {random.randint(1, 10000)}",
        "description": "Load test listing",
        "category_id": category,
        "request": "Anything",
    }, headers=headers)
    if resp.status_code != 201:
        return None
    item_id = resp.json()["id"]
    client.post(f"/api/v1/items/{item_id}/approve", headers=admin, name="/api/v1/items/{id}/approve")
    return item_id


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("SETUP: the first user lists the contested item...")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - many users, one item

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings WHERE item_id = X AND is_active;
    Must be exactly 1
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = register_and_login(self.client)
        if self.headers and not CONTESTED_ITEM_ID:
            admin = admin_headers(self.client)
            item_id = list_approved_item(self.client, self.headers, admin) if admin else None
            if item_id:
                globals()["CONTESTED_ITEM_ID"] = item_id
                print(f"\n✓ Item {item_id} is up for grabs\n")

    @tag("concurrency")
    @task
    def book_contested_item(self):
        """Everyone fights for the same item."""
        if not CONTESTED_ITEM_ID or not self.headers:
            return

        with self.client.post("/api/v1/bookings/",
            json={"item_id": CONTESTED_ITEM_ID},
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()
            elif resp.status_code == 400:
                resp.success()  # The lister trying their own item
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare avg response time, requests/sec and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_items_cached(self):
        page = random.randint(1, 5)
        self.client.get(f"/api/v1/items/?page={page}&page_size=20",
            name="/api/v1/items/ [cached]")

    @tag("throughput", "read")
    @task(3)
    def search_items(self):
        self.client.get("/api/v1/items/?search=item", name="/api/v1/items/?search")

    @tag("throughput", "read")
    @task(3)
    def get_item_detail(self):
        if ITEM_IDS:
            self.client.get(f"/api/v1/items/{random.choice(ITEM_IDS)}",
                name="/api/v1/items/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = register_and_login(self.client)

    def expect(self, method, path, allowed, **kwargs):
        with self.client.request(method, path, catch_response=True, **kwargs) as resp:
            if resp.status_code in allowed:
                resp.success()
            else:
                resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def missing_item(self):
        self.expect("POST", "/api/v1/bookings/", (404,),
            json={"item_id": 999999}, headers=self.headers)

    @tag("edge")
    @task
    def item_id_wrong_type(self):
        self.expect("POST", "/api/v1/bookings/", (422,),
            json={"item_id": "abc"}, headers=self.headers)

    @tag("edge")
    @task
    def malformed_json(self):
        self.expect("POST", "/api/v1/bookings/", (400, 422),
            data="not json at all", headers=self.headers)

    @tag("edge")
    @task
    def missing_auth(self):
        self.expect("POST", "/api/v1/bookings/", (401,), json={"item_id": 1})

    @tag("edge")
    @task
    def cancel_missing_booking(self):
        self.expect("POST", "/api/v1/bookings/999999/cancel", (404,),
            headers=self.headers, name="/api/v1/bookings/{id}/cancel")

    @tag("edge")
    @task
    def unknown_points_package(self):
        self.expect("POST", "/api/v1/points/buy", (400,),
            json={"package_id": "package_free"}, headers=self.headers)


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly browsing, some bookings and cancellations, rare listings.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = register_and_login(self.client)
        self.admin = admin_headers(self.client)
        self.booking_ids = []

    @task(50)
    def browse_items(self):
        resp = self.client.get("/api/v1/items/?page=1&page_size=20")
        if resp.status_code == 200:
            for item in resp.json().get("items", []):
                if item["id"] not in ITEM_IDS:
                    ITEM_IDS.append(item["id"])

    @task(20)
    def view_item(self):
        if ITEM_IDS:
            self.client.get(f"/api/v1/items/{random.choice(ITEM_IDS)}", name="/api/v1/items/{id}")

    @task(10)
    def book_item(self):
        if ITEM_IDS and self.headers:
            with self.client.post("/api/v1/bookings/",
                json={"item_id": random.choice(ITEM_IDS)},
                headers=self.headers,
                catch_response=True
            ) as resp:
                if resp.status_code == 201:
                    self.booking_ids.append(resp.json()["id"])
                    resp.success()
                elif resp.status_code in (400, 404, 409):
                    resp.success()

    @task(5)
    def cancel_booking(self):
        if self.booking_ids:
            booking_id = self.booking_ids.pop()
            self.client.post(f"/api/v1/bookings/{booking_id}/cancel",
                headers=self.headers, name="/api/v1/bookings/{id}/cancel")

    @task(3)
    def list_item(self):
        if self.headers and self.admin:
            item_id = list_approved_item(self.client, self.headers, self.admin)
            if item_id:
                ITEM_IDS.append(item_id)
