from __future__ import annotations

import os
import random

from locust import HttpUser, between, task

BASE_URL = os.getenv("AIENERGY_BASE_URL", "http://localhost:8000")
PRECISIONS = ("FP32", "FP16", "FP8")


class CalculatorUser(HttpUser):
    host = BASE_URL
    wait_time = between(1, 3)

    def on_start(self):
        response = self.client.get("/api/models", name="list_models")
        self.model_names = [model["name"] for model in response.json()] if response.ok else []

    @task(3)
    def compute_metrics(self):
        payload = {
            "model_name": random.choice(self.model_names) if self.model_names else "Llama 2 70B",
            "token_count": random.randint(1_000, 10_000_000),
            "precision": random.choice(PRECISIONS),
            "pue": round(random.uniform(1.0, 2.5), 2),
        }
        self.client.post("/api/metrics", json=payload, name="compute_metrics")

    @task
    def list_models(self):
        self.client.get("/api/models", name="list_models")
