from .university import University, Course
from .question import Question, QuestionType
from .template import QuestionTemplate, TemplateQuestion, TemplateActivation
from .response_session import ResponseSession, SessionQuestion, SessionStatus
from .response import SessionResponse, ResponseStatus
