"""
docagg Stage Classes.

Step categories:
- join: LookupStage
- filter: MatchStage
- transform: ProjectStage, SetStage
- ordering: SortStage, SkipStage, LimitStage
"""

from .base import Stage
from .join import LookupStage
from .filter import MatchStage
from .transform import ProjectStage, SetStage
from .ordering import SortStage, SkipStage, LimitStage

__all__ = [
    "Stage",
    # Join
    "LookupStage",
    # Filter
    "MatchStage",
    # Transform
    "ProjectStage",
    "SetStage",
    # Ordering
    "SortStage",
    "SkipStage",
    "LimitStage",
]
