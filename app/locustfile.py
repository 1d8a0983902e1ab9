import os

from locust import HttpUser, task, between
import requests

requests.packages.urllib3.disable_warnings()
class FeedDownloadUser(HttpUser):
    wait_time = between(1, 3)

    email = os.getenv("LOCUST_EMAIL", "user@example.com")
    password = os.getenv("LOCUST_PASSWORD", "Password1!")
    feed_item_id = int(os.getenv("LOCUST_FEED_ITEM", "1"))

    def on_start(self):
        response = self.client.post("/api/auth/login", json={"email": self.email, "password": self.password}, verify=False)
        body = response.json()
        self.headers = {
            "Authorization": f"Bearer {body.get('accessToken')}",
            "X-Device-Token": body.get("user", {}).get("deviceToken", ""),
        }

    @task(3)
    def browse_feed(self):
        self.client.get("/api/feed/?page=1&limit=10", verify=False)

    @task(1)
    def issue_and_verify_download(self):
        response = self.client.get(f"/api/feed/download/{self.feed_item_id}", headers=self.headers,
                                   name="/api/feed/download/[id]", verify=False)
        if response.status_code != 200:
            return
        token = response.json()["downloadToken"]
        self.client.get("/api/feed/secure-download", params={"token": token},
                        name="/api/feed/secure-download", verify=False)
