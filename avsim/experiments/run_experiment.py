import json
import logging
import time
from typing import Optional

from avsim.domain.models import MapVariant, Position
from avsim.kernel.simulation_kernel import SimulationKernel

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    "seed": 42,
    "ticks": 100,
    "mapType": "warehouse",
    "waypoints": [[150, 200]],
}


def load_settings(config_path: Optional[str]) -> dict:
    settings = dict(DEFAULT_SETTINGS)
    if config_path:
        with open(config_path) as f:
            settings.update(json.load(f))
    return settings


def run_headless_experiment(config_path: Optional[str], output_path: str, kernel: Optional[SimulationKernel] = None):
    settings = load_settings(config_path)

    kernel = kernel if kernel is not None else SimulationKernel()
    kernel.initialize(seed=settings["seed"], map_type=MapVariant(settings["mapType"]))
    lead = kernel.state.vehicles[0].id
    for x, y in settings["waypoints"]:
        kernel.append_waypoint(lead, Position(x=x, y=y))

    results = []

    start_time = time.time()
    for i in range(settings["ticks"]):
        kernel.run_tick()
        state = kernel.get_state()
        results.append({
            "tick": state.tick,
            "time": state.time,
            "vehicles": [
                {
                    "id": v.id,
                    "x": round(v.position.x, 3),
                    "y": round(v.position.y, 3),
                    "decision": v.lastDecision.kind.value,
                    "battery": round(v.parameters.batteryPercentage, 3),
                    "moving": v.isMoving
                }
                for v in state.vehicles
            ],
            "arrivals": list(kernel.arrivals)
        })

    end_time = time.time()
    logger.info("Experiment finished in %.4fs", end_time - start_time)

    with open(output_path, 'w') as f:
        json.dump(results, f, indent=2)
    return results

if __name__ == "__main__":
    import sys
    logging.basicConfig(level=logging.INFO)
    if len(sys.argv) > 2:
        run_headless_experiment(sys.argv[1], sys.argv[2])
    elif len(sys.argv) == 2:
        run_headless_experiment(None, sys.argv[1])
    else:
        print("Usage: python -m avsim.experiments.run_experiment [config.json] <output.json>")
