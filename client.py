import requests
from typing import Optional

class WorkoutLogClient:
    """Simple REST client for the workout log API."""

    def __init__(self, base_url: str = "http://localhost:8000") -> None:
        self.base_url = base_url.rstrip("/")

    def create_user(self, name: str, avatar_symbol: Optional[str] = None) -> str:
        params = {"name": name}
        if avatar_symbol:
            params["avatar_symbol"] = avatar_symbol
        resp = requests.post(f"{self.base_url}/users", params=params)
        resp.raise_for_status()
        return resp.json()["id"]

    def list_users(self):
        resp = requests.get(f"{self.base_url}/users")
        resp.raise_for_status()
        return resp.json()

    def create_exercise(self, name: str, exercise_type: str = "strength") -> str:
        resp = requests.post(
            f"{self.base_url}/exercises",
            params={"name": name, "exercise_type": exercise_type},
        )
        resp.raise_for_status()
        return resp.json()["id"]

    def log_record(self, user_id: str, exercise_id: str, **values) -> dict:
        resp = requests.post(
            f"{self.base_url}/records",
            params={"user_id": user_id, "exercise_id": exercise_id, **values},
        )
        resp.raise_for_status()
        return resp.json()

    def history(self, **params: str):
        resp = requests.get(f"{self.base_url}/history", params=params)
        resp.raise_for_status()
        return resp.json()

    def delete_record(self, record_id: str) -> None:
        resp = requests.delete(f"{self.base_url}/records/{record_id}")
        resp.raise_for_status()
