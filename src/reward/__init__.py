from .reward import CandidateEvaluation, RewardCalculator, RewardConfig, RewardInfo

__all__ = [
    "CandidateEvaluation",
    "RewardCalculator",
    "RewardConfig",
    "RewardInfo",
]
