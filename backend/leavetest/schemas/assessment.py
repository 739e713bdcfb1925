from pydantic import BaseModel, ConfigDict, Field, field_serializer
from datetime import date, datetime
from typing import Dict, List, Literal, Optional
from ..utils.timezone import format_local_time


QuestionType = Literal["mcq", "coding"]
Difficulty = Literal["easy", "medium", "hard"]
Language = Literal["javascript", "python", "java", "cpp"]
WarningLevel = Literal["normal", "warning", "critical"]
ViolationType = Literal[
    "tab-switch",
    "copy-paste",
    "right-click",
    "window-blur",
    "keyboard-shortcut",
    "paste-attempt",
    "devtools",
    "fullscreen-exit",
    "screen-capture",
    "drag-drop",
    "print-attempt",
]


class TestCase(BaseModel):
    input: str = ""
    expected_output: str = ""
    is_hidden: bool = False


class QuestionOption(BaseModel):
    text: str
    is_correct: bool = False


class QuestionImport(BaseModel):
    """One bank question as read from an import file"""
    question_type: QuestionType
    subject: str
    difficulty: Difficulty = "medium"
    question_text: str
    points: int = Field(1, gt=0)
    options: List[QuestionOption] = []
    problem_statement: Optional[str] = None
    constraints: Optional[str] = None
    input_format: Optional[str] = None
    output_format: Optional[str] = None
    sample_input: Optional[str] = None
    sample_output: Optional[str] = None
    starter_code: Optional[str] = None
    test_cases: List[TestCase] = []
    time_limit: int = 300
    is_active: bool = True


class JudgeCaseResult(BaseModel):
    passed: bool
    actual_output: Optional[str] = None
    error: Optional[str] = None


class JudgeResult(BaseModel):
    all_passed: bool
    passed_count: int
    total_count: int
    score: float
    per_case: List[JudgeCaseResult] = []


class AnswerPayload(BaseModel):
    selected_option: Optional[int] = None
    code: Optional[str] = None
    language: Optional[Language] = None


class SubmitAnswerRequest(AnswerPayload):
    question_id: int
    expected_version: Optional[int] = None


class AnswerResult(BaseModel):
    is_correct: bool
    score: float
    total_score: float
    round: int
    version: int
    passed_cases: Optional[int] = None
    total_cases: Optional[int] = None
    case_results: List[bool] = []


class SubmitTestRequest(BaseModel):
    expected_version: Optional[int] = None


class SubmitTestResult(BaseModel):
    message: str
    status: str
    current_round: int
    total_score: float
    max_score: int
    round1_score: Optional[float] = None
    round1_percentage: Optional[float] = None
    percentage: Optional[float] = None
    passed: Optional[bool] = None
    version: int


class ViolationRequest(BaseModel):
    type: ViolationType
    detail: str = ""
    expected_version: Optional[int] = None


class ViolationResult(BaseModel):
    auto_submitted: bool
    violation_count: int
    max_violations: int
    current_penalty: float
    penalty_per_violation: float
    warning_level: WarningLevel
    percentage: Optional[float] = None
    version: int


class LeaveApplyRequest(BaseModel):
    reason: str = ""
    start_date: date
    end_date: date
    subjects: List[str] = []


class LeaveResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    reason: str
    start_date: date
    end_date: date
    subjects: List[str]
    status: str
    test_score: float
    test_result: str
    test_attempt_id: Optional[int] = None


class SampleCase(BaseModel):
    input: str
    expected_output: str


class PublicQuestion(BaseModel):
    """A question as shown to the student: no correctness flags, no hidden cases."""
    id: int
    round: int
    question_type: QuestionType
    subject: str
    difficulty: Difficulty
    points: int
    question_text: str
    options: List[str] = []
    problem_statement: Optional[str] = None
    constraints: Optional[str] = None
    input_format: Optional[str] = None
    output_format: Optional[str] = None
    sample_input: Optional[str] = None
    sample_output: Optional[str] = None
    starter_code: Optional[str] = None
    sample_cases: List[SampleCase] = []
    answered: bool = False


class TestPaper(BaseModel):
    test_id: int
    current_round: int
    status: str
    time_limit: int
    start_time: datetime
    require_fullscreen: bool
    questions: List[PublicQuestion]
    version: int


class ResponseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    question_id: int
    round: int
    selected_option: Optional[int] = None
    language: Optional[str] = None
    is_correct: bool
    score: float
    judge_passed: Optional[int] = None
    judge_total: Optional[int] = None


class ViolationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    violation_type: str
    detail: Optional[str] = None
    timestamp: datetime


class AttemptResult(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    leave_request_id: int
    status: str
    current_round: int
    round1_score: float
    round2_score: float
    total_score: float
    max_score: int
    percentage: float
    start_time: datetime
    end_time: Optional[datetime] = None
    time_limit: int
    violation_count: int
    violation_penalty: float
    responses: List[ResponseOut] = []
    violations: List[ViolationOut] = []
    version: int

    start_time_local: Optional[str] = None
    end_time_local: Optional[str] = None

    @field_serializer('start_time_local')
    def serialize_start_time_local(self, value):
        if self.start_time:
            return format_local_time(self.start_time)
        return None

    @field_serializer('end_time_local')
    def serialize_end_time_local(self, value):
        if self.end_time:
            return format_local_time(self.end_time)
        return None


class ViolationSummary(BaseModel):
    attempt_id: int
    total_violations: int
    violation_penalty: float
    by_type: Dict[str, int] = Field(default_factory=dict)
    timeline: List[ViolationOut] = []
