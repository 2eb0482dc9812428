# Simulation Configuration

# Map Settings
MAP_WIDTH = 800.0
MAP_HEIGHT = 600.0
GRID_STEP = 5.0

# Planner Costs
STEP_BIAS = 5.0              # Added to every edge to discourage needless detours
FORBIDDEN_COST = 1_000_000.0
MEDIUM_SEVERITY_MULTIPLIER = 2.5
LOW_SEVERITY_MULTIPLIER = 1.5
PEDESTRIAN_COST_RADIUS = 40.0
BLOCKING_PEDESTRIAN_PENALTY = 100.0
PASSING_PEDESTRIAN_PENALTY = 20.0
CRITICAL_BATTERY_COST_FACTOR = 0.7   # battery < 20
LOW_BATTERY_COST_FACTOR = 0.9        # battery < 40
BAD_TIRE_COST_FACTOR = 1.4           # pressure < 75
WORN_TIRE_COST_FACTOR = 1.2          # pressure < 85
SLOW_SPEED_RATIO = 0.7
SLOW_SPEED_COST_FACTOR = 1.3

# Planner Search
MAX_ITERATIONS = 500_000
GOAL_TOLERANCE_STEPS = 5
GOAL_SNAP_DISTANCE = 1.0
SMOOTHING_WINDOW_STEPS = 3
SEGMENT_SAMPLES = 10

# Obstacle Buffers
PLANNER_BUILDING_BUFFER = 20.0
CITY_SIGHT_BUFFER = 5.0
STORAGE_GAP = 8.0
PLACEMENT_BUFFER = 10.0
MOTION_BUILDING_BUFFER = 10.0
MOTION_BUILDING_SAMPLES = 20
PLACEMENT_MAX_TRIES = 20

# Perception
PEDESTRIAN_RADIUS = 8.0
PEDESTRIAN_DETECTION_DISTANCE = PEDESTRIAN_RADIUS * 10
PEDESTRIAN_STOP_DISTANCE = 8.0
LATERAL_DETECTION_WIDTH = 15.0
TRAFFIC_LOOKAHEAD = 150.0
VEHICLE_WIDTH = 20.0

# Reroute Triggers
CRITICAL_BATTERY = 15.0
LOW_TIRE_PRESSURE = 75.0
TRAFFIC_LOOKAHEAD_POINTS = 5
TRAFFIC_SCORE_HIGH = 3
TRAFFIC_SCORE_MEDIUM = 1
TRAFFIC_SCORE_THRESHOLD = 4
PEDESTRIAN_LOOKAHEAD_POINTS = 3
PEDESTRIAN_ROUTE_CLEARANCE = 30.0
BUILDING_LOOKAHEAD_POINTS = 5
REROUTE_COOLDOWN_MS = 1000.0

# Reroute Fallbacks
DETOUR_CLEARANCE = 2.0       # Extra distance beyond the storage gap for detour corners
CLEAR_POINT_MAX_RADIUS = 60
CLEAR_POINT_ANGLE_STEP = 5
CLEAR_POINT_MIN_GAP = 10.0

# Collision Prediction
COLLISION_LOOKAHEAD_MS = 2000
COLLISION_TIME_STEP_MS = 100
COLLISION_THRESHOLD = 30.0
SPEED_EPSILON = 1e-6

# Speed Overrides
PEDESTRIAN_SLOW_SPEED = (8.0, 12.0)
OBSTACLE_SPEED = (15.0, 25.0)
WAYPOINT_REACHED_DISTANCE = 1.0

# Vehicle Defaults
DEFAULT_BATTERY = 85.0
DEFAULT_CONSUMPTION = 0.5
DEFAULT_TIRE_PRESSURE = 95.0
DEFAULT_SPEED = 30.0
DEFAULT_MILEAGE = 25000.0
DEFAULT_MAX_BATTERY = 100.0
DEFAULT_MAX_FUEL = 50.0
MIN_TIRE_PRESSURE = 60.0
MAX_TIRE_WEAR = 0.05

# Consumption multipliers while inside a traffic zone
HIGH_TRAFFIC_CONSUMPTION = 1.8
MEDIUM_TRAFFIC_CONSUMPTION = 1.4
LOW_TRAFFIC_CONSUMPTION = 1.1

# Environment
DEFAULT_TRAFFIC_COUNT = 5
TRAFFIC_RADIUS_RANGE = (40.0, 100.0)
PEDESTRIAN_COUNT_RANGE = (8, 12)
PEDESTRIAN_SPEED_RANGE = (10.0, 20.0)
PEDESTRIAN_ARRIVAL_DISTANCE = 10.0
DRAIN_BATTERY_RANGE = (5, 20)
CHARGE_STATIONS = {
    "warehouse": (120.0, 120.0),
    "city": (740.0, 530.0),
}

# Kernel
LOG_CAPACITY = 100
TICK_INTERVAL_MS = 100.0
CITY_FLEET_SIZE = 5
