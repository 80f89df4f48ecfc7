from .pointnav_env import PointNavConfig, PointNavEnv, default_layout

__all__ = ["PointNavConfig", "PointNavEnv", "default_layout"]
