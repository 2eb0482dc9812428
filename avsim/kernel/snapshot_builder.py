from avsim.domain.models import SimulationSnapshot
from avsim.domain.state import SimulationState

class SnapshotBuilder:
    def build(self, state: SimulationState) -> SimulationSnapshot:
        return SimulationSnapshot(
            tick=state.tick_id,
            time=state.time,
            mapType=state.map_type,
            isRunning=state.is_running,
            simulationSpeed=state.speed_multiplier,
            selectedVehicleIndex=state.selected_index,
            vehicles=[v.model_copy(deep=True) for v in state.vehicles],
            traffic=list(state.traffic),
            pedestrians=list(state.pedestrians)
        )
