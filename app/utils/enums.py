import enum


class Role(str, enum.Enum):
    admin = "admin"
    collaborator = "collaborator"
    student = "student"


class QuestionType(str, enum.Enum):
    single_choice = "SINGLE_CHOICE"
    multiple_choice = "MULTIPLE_CHOICE"
    open_text = "OPEN_TEXT"


class QuestionStatus(str, enum.Enum):
    draft = "DRAFT"
    published = "PUBLISHED"
    archived = "ARCHIVED"


class SimulationType(str, enum.Enum):
    official = "OFFICIAL"
    quick_quiz = "QUICK_QUIZ"
    personal = "PERSONAL"


class SimulationStatus(str, enum.Enum):
    draft = "DRAFT"
    published = "PUBLISHED"
    archived = "ARCHIVED"


class SimulationVisibility(str, enum.Enum):
    private = "PRIVATE"
    group = "GROUP"
    public = "PUBLIC"


class AssignmentStatus(str, enum.Enum):
    active = "ACTIVE"
    closed = "CLOSED"
    completed = "COMPLETED"


class VirtualRoomStatus(str, enum.Enum):
    waiting = "WAITING"
    started = "STARTED"
    completed = "COMPLETED"


class AnswerCategory(str, enum.Enum):
    correct = "correct"
    wrong = "wrong"
    blank = "blank"
    pending = "pending"


class AccessDenialReason(str, enum.Enum):
    # Access window
    not_started = "NOT_STARTED"
    expired = "EXPIRED"
    assignment_closed = "ASSIGNMENT_CLOSED"
    no_access = "NO_ACCESS"
    # Attempt limits
    already_completed = "ALREADY_COMPLETED"
    max_attempts_reached = "MAX_ATTEMPTS_REACHED"


class StudentSimulationStatus(str, enum.Enum):
    not_started = "not_started"
    available = "available"
    in_progress = "in_progress"
    completed = "completed"
    expired = "expired"


class NotificationType(str, enum.Enum):
    simulation_assigned = "SIMULATION_ASSIGNED"
    open_answer_graded = "OPEN_ANSWER_GRADED"
