"""HTTP surface tests. The background tick loop only runs under the app
lifespan, so ticks are driven by hand with ``kernel.run_tick()``."""
import unittest

from fastapi.testclient import TestClient

from avsim.domain.models import MapVariant
from avsim.main import app, kernel

client = TestClient(app)


class TestApi(unittest.TestCase):
    def setUp(self):
        kernel.command_queue.clear()
        kernel.state.is_running = True
        kernel.state.speed_multiplier = 1.0
        kernel.initialize(seed=42, map_type=MapVariant.WAREHOUSE)
        kernel.state.traffic = []
        kernel.state.pedestrians = []

    def test_root(self):
        response = client.get("/")
        self.assertEqual(response.status_code, 200)

    def test_state(self):
        body = client.get("/api/simulation/state").json()
        self.assertEqual(body["tick"], 0)
        self.assertEqual(body["mapType"], "warehouse")
        self.assertEqual(body["vehicles"][0]["id"], "AV-001")
        self.assertEqual(body["vehicles"][0]["lastDecision"]["kind"], "INITIALIZED")
        self.assertEqual(body["vehicles"][0]["lastDecision"]["label"], "Initialized")

    def test_vehicle_lookup(self):
        self.assertEqual(client.get("/api/vehicles/AV-001").json()["id"], "AV-001")
        self.assertEqual(client.get("/api/vehicles/AV-404").status_code, 404)
        self.assertEqual(len(client.get("/api/vehicles").json()), 1)

    def test_health(self):
        body = client.get("/api/vehicles/AV-001/health").json()
        self.assertEqual(body, {"vehicleId": "AV-001", "score": 93, "status": "good"})
        self.assertEqual(client.get("/api/vehicles/AV-404/health").status_code, 404)

    def test_add_vehicle(self):
        response = client.post("/api/vehicles", json={"position": {"x": 100, "y": 150}})
        self.assertEqual(response.json()["vehicleId"], "AV-002")
        kernel.run_tick()
        self.assertEqual(len(client.get("/api/vehicles").json()), 2)

    def test_duplicate_vehicle_id(self):
        response = client.post("/api/vehicles", json={"id": "AV-001", "position": {"x": 100, "y": 150}})
        self.assertEqual(response.status_code, 409)

    def test_invalid_payload(self):
        self.assertEqual(client.post("/api/vehicles", json={"position": {"x": 1}}).status_code, 422)
        self.assertEqual(client.post("/api/simulation/speed", json={"multiplier": 0}).status_code, 422)
        self.assertEqual(client.post("/api/traffic/generate", json={"count": 100}).status_code, 422)
        self.assertEqual(client.post("/api/vehicles/select", json={"index": -1}).status_code, 422)

    def test_select_vehicle(self):
        self.assertEqual(client.post("/api/vehicles/select", json={"index": 5}).status_code, 404)
        self.assertEqual(client.post("/api/vehicles/select", json={"index": 0}).status_code, 200)

    def test_append_waypoint(self):
        response = client.post("/api/vehicles/AV-001/waypoints", json={"position": {"x": 150, "y": 200}})
        self.assertEqual(response.status_code, 200)
        kernel.run_tick()
        vehicle = client.get("/api/vehicles/AV-001").json()
        self.assertEqual(vehicle["waypoints"], [{"x": 150.0, "y": 200.0}])
        logs = client.get("/api/logs").json()
        self.assertIn("WAYPOINT_ADDED", [entry["event"] for entry in logs])
        self.assertEqual(client.post("/api/vehicles/AV-404/waypoints",
                                     json={"position": {"x": 1, "y": 1}}).status_code, 404)

    def test_drain_fuel(self):
        client.post("/api/vehicles/AV-001/drain-fuel")
        kernel.run_tick()
        self.assertTrue(client.get("/api/vehicles/AV-001").json()["lowBatteryMode"])
        self.assertEqual(client.post("/api/vehicles/AV-404/drain-fuel").status_code, 404)

    def test_traffic_endpoints(self):
        condition = {"position": {"x": 400, "y": 300}, "severity": "medium", "affectedRadius": 50}
        client.post("/api/traffic", json=condition)
        kernel.run_tick()
        self.assertEqual(len(client.get("/api/simulation/state").json()["traffic"]), 1)

        client.post("/api/traffic/generate", json={"count": 3})
        kernel.run_tick()
        self.assertEqual(len(client.get("/api/simulation/state").json()["traffic"]), 3)

        client.delete("/api/traffic")
        kernel.run_tick()
        self.assertEqual(client.get("/api/simulation/state").json()["traffic"], [])

    def test_pedestrian_endpoints(self):
        response = client.post("/api/pedestrians", json={"position": {"x": 50, "y": 50},
                                                         "destination": {"x": 50, "y": 300}})
        self.assertEqual(response.json()["pedestrianId"], "PED-001")
        kernel.run_tick()
        self.assertEqual(len(client.get("/api/simulation/state").json()["pedestrians"]), 1)

        client.delete("/api/pedestrians")
        kernel.run_tick()
        self.assertEqual(client.get("/api/simulation/state").json()["pedestrians"], [])

    def test_simulation_controls(self):
        client.post("/api/simulation/pause")
        client.post("/api/simulation/speed", json={"multiplier": 2})
        kernel.run_tick()
        state = client.get("/api/simulation/state").json()
        self.assertFalse(state["isRunning"])
        self.assertEqual(state["simulationSpeed"], 2.0)
        self.assertEqual(state["tick"], 0)

        client.post("/api/simulation/start")
        kernel.run_tick()
        state = client.get("/api/simulation/state").json()
        self.assertEqual(state["tick"], 1)
        self.assertEqual(state["time"], 200.0)

        client.post("/api/simulation/reset")
        kernel.run_tick()
        self.assertEqual(client.get("/api/simulation/state").json()["tick"], 1)

    def test_map_switch(self):
        client.post("/api/simulation/pause")
        client.post("/api/simulation/map", json={"mapType": "city"})
        kernel.run_tick()
        state = client.get("/api/simulation/state").json()
        self.assertEqual(state["mapType"], "city")
        self.assertEqual(len(state["vehicles"]), 5)
        self.assertEqual(client.post("/api/simulation/map", json={"mapType": "moon"}).status_code, 422)


if __name__ == '__main__':
    unittest.main()
