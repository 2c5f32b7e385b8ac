import os

from locust import HttpUser, task, between


class CuratorUser(HttpUser):
    wait_time = between(1, 3)

    def on_start(self):
        token = os.environ.get("EXHIBITS_BENCH_TOKEN", "")
        self.headers = {"Authorization": f"Bearer {token}"}
        r = self.client.post(
            "/api/exhibits", json={"title": "bench exhibit"}, headers=self.headers
        )
        self.exhibit_id = r.json().get("data", {}).get("uuid")

    @task(3)
    def list_exhibits(self):
        self.client.get("/api/exhibits", headers=self.headers)

    @task(2)
    def list_content(self):
        if self.exhibit_id:
            self.client.get(
                f"/api/exhibits/{self.exhibit_id}/content",
                headers=self.headers,
                name="/api/exhibits/[id]/content",
            )

    @task(1)
    def create_item(self):
        if self.exhibit_id:
            self.client.post(
                f"/api/exhibits/{self.exhibit_id}/items",
                json={"title": "bench item", "item_type": "text", "text": "lorem"},
                headers=self.headers,
                name="/api/exhibits/[id]/items",
            )
