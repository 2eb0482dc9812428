import asyncio
import logging
import time
from fastapi import FastAPI, HTTPException
from typing import List
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from avsim.kernel.simulation_kernel import SimulationKernel
from avsim.application.commands import (
    AddVehicleCommand, AppendWaypointCommand, DrainFuelCommand, SelectVehicleCommand,
    AddTrafficCommand, GenerateTrafficCommand, ClearTrafficCommand,
    AddPedestrianCommand, GeneratePedestriansCommand, ClearPedestriansCommand,
    SetMapTypeCommand, SetRunningCommand, SetSpeedCommand, ResetCommand
)
from avsim.domain import config
from avsim.domain.models import (
    HealthReport, LogEntry, MapSelection, Pedestrian, PedestrianCreate, SimulationSnapshot, SpeedUpdate,
    TrafficCondition, TrafficGenerate, Vehicle, VehicleCreate, VehicleSelection, WaypointAppend
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# Initialize Kernel
kernel = SimulationKernel()

# Background task for simulation loop
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Start the simulation loop
    kernel.initialize() # Deterministic seed
    loop_task = asyncio.create_task(run_simulation())
    yield
    # Shutdown
    loop_task.cancel()

app = FastAPI(lifespan=lifespan)

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

async def run_simulation():
    """Runs the tick loop every 100 ms of wall time; simulated time per tick scales with the speed multiplier"""
    interval = config.TICK_INTERVAL_MS / 1000.0

    while True:
        start_time = time.time()
        kernel.run_tick()
        elapsed = time.time() - start_time
        if elapsed > interval:
            logger.debug("Tick %d took %.3fs", kernel.state.tick_id, elapsed)
        await asyncio.sleep(max(0.0, interval - elapsed))

def _require_vehicle(vehicle_id: str) -> Vehicle:
    vehicle = kernel.get_vehicle(vehicle_id)
    if vehicle is None:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return vehicle

@app.get("/api/simulation/state", response_model=SimulationSnapshot)
async def get_simulation_state():
    """Returns the current state of the simulation"""
    return kernel.get_state()

@app.get("/api/logs", response_model=List[LogEntry])
async def get_logs():
    """Returns the last 100 vehicle events, newest first"""
    return kernel.get_logs()

@app.get("/api/vehicles", response_model=List[Vehicle])
async def get_vehicles():
    return kernel.get_state().vehicles

@app.get("/api/vehicles/{vehicle_id}", response_model=Vehicle)
async def get_vehicle(vehicle_id: str):
    return _require_vehicle(vehicle_id)

@app.get("/api/vehicles/{vehicle_id}/health", response_model=HealthReport)
async def get_vehicle_health(vehicle_id: str):
    _require_vehicle(vehicle_id)
    return kernel.health(vehicle_id)

@app.post("/api/vehicles")
async def add_vehicle(payload: VehicleCreate):
    """Queues a new vehicle for the next tick"""
    vehicle_id = payload.id or kernel.allocate_vehicle_id()
    if kernel.get_vehicle(vehicle_id) is not None:
        raise HTTPException(status_code=409, detail="Vehicle id already in use")
    kernel.queue_command(AddVehicleCommand(vehicle_id, payload.position, payload.route))
    return {"status": "queued", "vehicleId": vehicle_id}

@app.post("/api/vehicles/select")
async def select_vehicle(selection: VehicleSelection):
    """Selects the vehicle that gets collision prediction and is excluded from auto-wander"""
    if selection.index >= len(kernel.state.vehicles):
        raise HTTPException(status_code=404, detail="Vehicle index out of range")
    kernel.queue_command(SelectVehicleCommand(selection.index))
    return {"status": "queued", "index": selection.index}

@app.post("/api/vehicles/{vehicle_id}/waypoints")
async def append_waypoint(vehicle_id: str, payload: WaypointAppend):
    """Appends a waypoint to the vehicle's route (click-to-route)"""
    _require_vehicle(vehicle_id)
    kernel.queue_command(AppendWaypointCommand(vehicle_id, payload.position))
    return {"status": "queued", "vehicleId": vehicle_id}

@app.post("/api/vehicles/{vehicle_id}/drain-fuel")
async def drain_fuel(vehicle_id: str):
    """Forces low battery mode and sends the vehicle to the charge station"""
    _require_vehicle(vehicle_id)
    kernel.queue_command(DrainFuelCommand(vehicle_id))
    return {"status": "queued", "vehicleId": vehicle_id}

@app.post("/api/traffic")
async def add_traffic(condition: TrafficCondition):
    kernel.queue_command(AddTrafficCommand(condition))
    return {"status": "queued"}

@app.post("/api/traffic/generate")
async def generate_traffic(payload: TrafficGenerate):
    """Replaces the traffic conditions with freshly generated ones"""
    kernel.queue_command(GenerateTrafficCommand(payload.count))
    return {"status": "queued", "count": payload.count}

@app.delete("/api/traffic")
async def clear_traffic():
    kernel.queue_command(ClearTrafficCommand())
    return {"status": "queued"}

@app.post("/api/pedestrians")
async def add_pedestrian(payload: PedestrianCreate):
    pedestrian_id = f"PED-{len(kernel.state.pedestrians) + 1:03d}"
    pedestrian = Pedestrian(id=pedestrian_id, **payload.model_dump())
    kernel.queue_command(AddPedestrianCommand(pedestrian))
    return {"status": "queued", "pedestrianId": pedestrian_id}

@app.post("/api/pedestrians/generate")
async def generate_pedestrians():
    kernel.queue_command(GeneratePedestriansCommand())
    return {"status": "queued"}

@app.delete("/api/pedestrians")
async def clear_pedestrians():
    kernel.queue_command(ClearPedestriansCommand())
    return {"status": "queued"}

@app.post("/api/simulation/map")
async def set_map_type(selection: MapSelection):
    """Switches map variant and regenerates the scenario"""
    kernel.queue_command(SetMapTypeCommand(selection.mapType))
    return {"status": "queued", "mapType": selection.mapType}

@app.post("/api/simulation/speed")
async def set_speed(update: SpeedUpdate):
    kernel.queue_command(SetSpeedCommand(update.multiplier))
    return {"status": "queued", "multiplier": update.multiplier}

@app.post("/api/simulation/start")
async def start_simulation():
    kernel.queue_command(SetRunningCommand(True))
    return {"status": "queued", "running": True}

@app.post("/api/simulation/pause")
async def pause_simulation():
    kernel.queue_command(SetRunningCommand(False))
    return {"status": "queued", "running": False}

@app.post("/api/simulation/reset")
async def reset_simulation():
    kernel.queue_command(ResetCommand())
    return {"status": "queued"}

@app.get("/")
def read_root():
    return {"status": "AV Simulation Backend Running (Deterministic Kernel)"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("avsim.main:app", host="0.0.0.0", port=8000)
