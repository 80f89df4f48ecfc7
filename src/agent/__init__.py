from .agent import ActionSpec, Agent, AgentConfig, AgentState
from .controls import ActuationSpec, make_move_fns, make_move_forward, make_turn
from .shortest_path_follower import GreedyFollowerError, ShortestPathFollower

__all__ = [
    "ActionSpec",
    "ActuationSpec",
    "Agent",
    "AgentConfig",
    "AgentState",
    "GreedyFollowerError",
    "ShortestPathFollower",
    "make_move_fns",
    "make_move_forward",
    "make_turn",
]
