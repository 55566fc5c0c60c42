from .take_notes import TakeNotes
from .answer_question import AnswerQuestion

__all__ = ["TakeNotes", "AnswerQuestion"]
