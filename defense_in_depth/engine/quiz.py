import logging
from typing import List, Optional, Sequence

from defense_in_depth.core.models import QuizQuestion

logger = logging.getLogger(__name__)


class QuizSession:
    """
    Linear walk through a list of quiz questions.

    Each question accepts exactly one answer; later answers to the same
    question are ignored.
    """

    def __init__(self, questions: Sequence[QuizQuestion]):
        if not questions:
            raise ValueError("A quiz needs at least one question.")
        self.questions: List[QuizQuestion] = list(questions)
        self.current_index = 0
        self.selected_answer: Optional[int] = None
        self.score = 0
        self.is_complete = False

    @property
    def current_question(self) -> QuizQuestion:
        return self.questions[self.current_index]

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def is_answered(self) -> bool:
        return self.selected_answer is not None

    @property
    def is_last_question(self) -> bool:
        return self.current_index == len(self.questions) - 1

    def answer(self, option_index: int) -> bool:
        """
        Records an answer for the current question.
        :param option_index: Index into the current question's options.
        :return: True if the answer was accepted, False if the question was already answered.
        """
        question = self.current_question
        if not 0 <= option_index < len(question.options):
            raise ValueError(f"Answer index {option_index} is out of range for question {question.id}.")
        if self.selected_answer is not None or self.is_complete:
            return False
        self.selected_answer = option_index
        if option_index == question.correct_answer:
            self.score += 1
        return True

    def is_correct(self) -> Optional[bool]:
        if self.selected_answer is None:
            return None
        return self.selected_answer == self.current_question.correct_answer

    def next(self) -> Optional[int]:
        """
        Moves to the next question.
        :return: The final score once the last question has been passed, otherwise None.
        """
        if self.is_complete:
            return self.score
        if self.is_last_question:
            self.is_complete = True
            logger.info(f"Quiz complete: {self.score}/{self.total}.")
            return self.score
        self.current_index += 1
        self.selected_answer = None
        return None

    def restart(self):
        self.current_index = 0
        self.selected_answer = None
        self.score = 0
        self.is_complete = False
