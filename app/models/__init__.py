# app/models/__init__.py

from .user import User, Student
from .group import Group, GroupMember
from .question import Question, QuestionAnswer, QuestionKeyword
from .simulation import Simulation, SimulationQuestion
from .simulation_assignment import SimulationAssignment
from .simulation_result import SimulationResult, SimulationOpenAnswer
from .simulation_session import SimulationSession
from .notification import Notification

__all__ = [
    "User",
    "Student",
    "Group",
    "GroupMember",
    "Question",
    "QuestionAnswer",
    "QuestionKeyword",
    "Simulation",
    "SimulationQuestion",
    "SimulationAssignment",
    "SimulationResult",
    "SimulationOpenAnswer",
    "SimulationSession",
    "Notification",
]
