from relaymeet.algorithms._base import TeamBalancer
from relaymeet.algorithms._registry import get_algorithms, get_balancer, register

DEFAULT_ALGORITHM = "gender_balanced"

__all__ = [
    "DEFAULT_ALGORITHM",
    "TeamBalancer",
    "get_algorithms",
    "get_balancer",
    "register",
]
