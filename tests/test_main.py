import unittest

from fastapi.testclient import TestClient

from rideweather.main import app
from rideweather.rate_limit import limiter


class TestMain(unittest.TestCase):
    def test_app_metadata(self):
        self.assertEqual(app.title, "RideWeather Planner")

    def test_health(self):
        with TestClient(app) as client:
            resp = client.get("/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "ok"})

    def test_lifespan_builds_service(self):
        with TestClient(app):
            self.assertEqual(app.state.weather_service.provider.name, "mock")
            self.assertIs(app.state.limiter, limiter)


if __name__ == "__main__":
    unittest.main()
