import unittest

from avsim.application.commands import (
    AddPedestrianCommand, AddTrafficCommand, AddVehicleCommand, AppendWaypointCommand, ClearPedestriansCommand,
    ClearTrafficCommand, DrainFuelCommand, SelectVehicleCommand, SetMapTypeCommand, SetRunningCommand,
    SetSpeedCommand
)
from avsim.domain.decisions import DecisionKind, LogEvent
from avsim.domain.models import MapVariant
from avsim.kernel.command_queue import CommandQueue
from avsim.kernel.simulation_kernel import SimulationKernel
from factories import make_pedestrian, make_zone, pos


class TestSimulationKernel(unittest.TestCase):
    def setUp(self):
        self.kernel = SimulationKernel()
        self.kernel.initialize(seed=42)

    def quiet(self):
        """Removes traffic and pedestrians so vehicles drive undisturbed."""
        self.kernel.queue_command(ClearTrafficCommand())
        self.kernel.queue_command(ClearPedestriansCommand())

    def test_initial_warehouse_scenario(self):
        state = self.kernel.get_state()
        self.assertEqual(state.tick, 0)
        self.assertEqual(state.mapType, MapVariant.WAREHOUSE)
        self.assertEqual([v.id for v in state.vehicles], ["AV-001"])
        self.assertEqual(state.vehicles[0].position, pos(100, 100))
        self.assertEqual(len(state.traffic), 5)
        self.assertTrue(8 <= len(state.pedestrians) <= 12)

    def test_tick_advances_time(self):
        self.kernel.run_tick()
        self.kernel.queue_command(SetSpeedCommand(2.0))
        self.kernel.run_tick()
        state = self.kernel.get_state()
        self.assertEqual(state.tick, 2)
        self.assertEqual(state.time, 300.0)

    def test_paused_kernel_applies_commands_only(self):
        self.kernel.queue_command(SetRunningCommand(False))
        self.kernel.queue_command(ClearTrafficCommand())
        self.kernel.run_tick()
        state = self.kernel.get_state()
        self.assertEqual(state.tick, 0)
        self.assertFalse(state.isRunning)
        self.assertEqual(state.traffic, [])

    def test_commands_wait_for_next_tick(self):
        self.kernel.queue_command(AddVehicleCommand("AV-010", pos(100, 150)))
        self.assertEqual(len(self.kernel.get_state().vehicles), 1)
        self.kernel.run_tick()
        self.assertIsNotNone(self.kernel.get_vehicle("AV-010"))

    def test_snapshot_is_a_copy(self):
        snapshot = self.kernel.get_state()
        snapshot.vehicles[0].parameters.batteryPercentage = 1.0
        snapshot.vehicles.clear()
        vehicle = self.kernel.get_vehicle("AV-001")
        self.assertEqual(vehicle.parameters.batteryPercentage, 85.0)

    def test_vehicle_reaches_appended_waypoint(self):
        self.quiet()
        self.kernel.queue_command(AppendWaypointCommand("AV-001", pos(130, 100)))
        for _ in range(20):
            self.kernel.run_tick()
        vehicle = self.kernel.get_vehicle("AV-001")
        self.assertEqual(self.kernel.arrivals, ["AV-001"])
        self.assertEqual(vehicle.lastDecision.kind, DecisionKind.DESTINATION_REACHED)
        self.assertAlmostEqual(vehicle.position.x, 130.0)
        self.assertAlmostEqual(vehicle.position.y, 100.0)
        events = [e.event for e in self.kernel.get_logs()]
        self.assertEqual(events[0], LogEvent.DESTINATION_REACHED)
        self.assertIn(LogEvent.WAYPOINT_ADDED, events)

    def test_drain_fuel(self):
        self.quiet()
        self.kernel.queue_command(DrainFuelCommand("AV-001"))
        self.kernel.run_tick()
        vehicle = self.kernel.get_vehicle("AV-001")
        self.assertTrue(vehicle.lowBatteryMode)
        self.assertEqual(vehicle.lastDecision.reason.value, "CHARGE_STATION")

    def test_unknown_vehicle_is_ignored(self):
        self.assertIsNone(self.kernel.append_waypoint("AV-404", pos(10, 10)))
        self.assertIsNone(self.kernel.drain_fuel("AV-404"))
        self.assertIsNone(self.kernel.health("AV-404"))

    def test_vehicle_ids_skip_taken_ones(self):
        self.kernel.add_vehicle("AV-002", pos(100, 150))
        self.assertEqual(self.kernel.allocate_vehicle_id(), "AV-003")

    def test_duplicate_ids_in_one_tick_are_rejected(self):
        self.kernel.queue_command(AddVehicleCommand("X", pos(100, 150)))
        self.kernel.queue_command(AddVehicleCommand("X", pos(100, 200)))
        self.kernel.run_tick()
        vehicles = self.kernel.get_state().vehicles
        self.assertEqual([v.id for v in vehicles], ["AV-001", "X"])
        self.assertAlmostEqual(vehicles[1].position.y, 150.0)
        self.assertIsNone(self.kernel.add_vehicle("AV-001", pos(300, 300)))

    def test_vehicle_events_reach_kernel_logs(self):
        self.assertIs(self.kernel.vehicle_system.event_log, self.kernel.event_log)
        self.quiet()
        self.kernel.queue_command(AppendWaypointCommand("AV-001", pos(130, 100)))
        self.kernel.run_tick()
        logs = self.kernel.get_logs()
        self.assertTrue(logs)
        self.assertEqual(logs[-1].event, LogEvent.WAYPOINT_ADDED)
        self.assertEqual(logs[-1].vehicleId, "AV-001")

    def test_selection_is_bounds_checked(self):
        self.kernel.queue_command(SelectVehicleCommand(3))
        self.kernel.run_tick()
        self.assertEqual(self.kernel.get_state().selectedVehicleIndex, 0)

    def test_environment_commands(self):
        self.kernel.queue_command(ClearTrafficCommand())
        self.kernel.queue_command(AddTrafficCommand(make_zone(400, 300)))
        self.kernel.queue_command(ClearPedestriansCommand())
        self.kernel.queue_command(AddPedestrianCommand(make_pedestrian(50, 50)))
        self.kernel.queue_command(SetRunningCommand(False))
        self.kernel.run_tick()
        state = self.kernel.get_state()
        self.assertEqual(len(state.traffic), 1)
        self.assertEqual([p.id for p in state.pedestrians], ["PED-001"])

    def test_health(self):
        report = self.kernel.health("AV-001")
        self.assertEqual(report.vehicleId, "AV-001")
        self.assertEqual(report.status, "good")


class TestCityKernel(unittest.TestCase):
    def setUp(self):
        self.kernel = SimulationKernel()
        self.kernel.initialize(seed=42)
        self.kernel.queue_command(SetRunningCommand(False))
        self.kernel.queue_command(SetMapTypeCommand(MapVariant.CITY))
        self.kernel.queue_command(ClearTrafficCommand())
        self.kernel.queue_command(ClearPedestriansCommand())
        self.kernel.run_tick()

    def test_city_fleet(self):
        state = self.kernel.get_state()
        self.assertEqual(state.mapType, MapVariant.CITY)
        self.assertEqual(len(state.vehicles), 5)
        self.assertEqual(state.vehicles[0].position, pos(100, 100))

    def test_idle_unselected_vehicles_wander(self):
        self.kernel.queue_command(SetRunningCommand(True))
        self.kernel.run_tick()
        vehicles = self.kernel.get_state().vehicles
        self.assertEqual(len(vehicles[0].route), 1)
        self.assertTrue(any(len(v.route) > 1 for v in vehicles[1:]))


class TestCommandQueue(unittest.TestCase):
    def test_applies_in_arrival_order(self):
        kernel = SimulationKernel()
        kernel.initialize(seed=1)
        queue = CommandQueue()
        queue.add(SetSpeedCommand(3.0))
        queue.add(SetSpeedCommand(0.5))
        self.assertEqual(len(queue), 2)
        queue.apply_all(kernel)
        self.assertEqual(len(queue), 0)
        self.assertEqual(kernel.state.speed_multiplier, 0.5)

    def test_clear(self):
        queue = CommandQueue()
        queue.add(ClearTrafficCommand())
        queue.clear()
        self.assertEqual(len(queue), 0)


if __name__ == '__main__':
    unittest.main()
