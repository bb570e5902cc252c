from locust import HttpUser, task, between, events
import random
import os
import requests

from pushit.core.security import create_user_token


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    from dotenv import load_dotenv
    load_dotenv()

    base_url = os.getenv("LOCUST_HOST") or environment.host

    print("Seeding test polls...")
    headers = {"Authorization": f"Bearer {create_user_token('locust-seeder', 'seeder@example.com')}"}
    for i in range(5):
        response = requests.post(
            f"{base_url}/api/v1/polls",
            json={"question": f"Load test poll number {i}", "options": ["Red", "Green", "Blue", "Yellow"]},
            headers=headers,
        )
        if response.status_code != 201:
            raise RuntimeError(f"Failed to create poll {i+1} in test setup: {response.status_code} {response.text}")


class HoldingUser(HttpUser):
    """Presses the global button, heartbeats for a while and lets go."""
    wait_time = between(1, 3)

    @task
    def hold_button(self):
        with self.client.post(
            "/api/v1/holds",
            json={"location_label": random.choice(["Portugal", "Chile", "Japan", None])},
            name="POST /api/v1/holds",
            catch_response=True,
        ) as start_response:
            if start_response.status_code != 201:
                start_response.failure(f"Hold start failed {start_response.text}")
                return
            hold_id = start_response.json()["id"]

        for _ in range(random.randint(1, 4)):
            self.client.post(f"/api/v1/holds/{hold_id}/heartbeat", name="POST /api/v1/holds/<id>/heartbeat")

        self.client.delete(f"/api/v1/holds/{hold_id}", name="DELETE /api/v1/holds/<id>")

    @task(3)
    def watch_count(self):
        self.client.get("/api/v1/holds/active-count", name="GET /api/v1/holds/active-count")


class VotingUser(HttpUser):
    wait_time = between(1, 2)

    def on_start(self):
        """List the open polls as a signed-in user"""
        user_id = f"locust-{random.getrandbits(48):012x}"
        self.client.headers["Authorization"] = f"Bearer {create_user_token(user_id, f'{user_id}@example.com')}"
        response = self.client.get("/api/v1/polls", name="GET /api/v1/polls")
        self.polls = response.json() if response.status_code == 200 else []

    @task
    def vote(self):
        open_polls = [p for p in self.polls if not p["has_voted"]]
        if not open_polls:
            return

        poll = random.choice(open_polls)
        option_id = random.choice(poll["options"])["option_id"]
        with self.client.post(
            f"/api/v1/polls/{poll['id']}/votes",
            json={"option_id": option_id},
            name="POST /api/v1/polls/<poll_id>/votes",
            catch_response=True,
        ) as vote_response:
            if vote_response.status_code != 200:
                vote_response.failure(f"Vote failed for poll {poll['id']}  {vote_response.text}")
                return
        poll["has_voted"] = True

        self.client.get(f"/api/v1/polls/{poll['id']}/tallies", name="GET /api/v1/polls/<poll_id>/tallies")
