"""
Quiz flow: question bank, scoring and the reward trigger.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from quizpay.engine import DisbursementOutcome, RewardEngine
from quizpay.session import WalletSession
from quizpay.wallet.models import DisbursementResult


@dataclass(frozen=True)
class Question:
    prompt: str
    options: tuple[str, ...]
    correct: int


DEFAULT_QUESTIONS: tuple[Question, ...] = (
    Question("What is the capital of France?", ("London", "Berlin", "Paris", "Madrid"), 2),
    Question(
        "Which planet is known as the Red Planet?", ("Venus", "Mars", "Jupiter", "Saturn"), 1
    ),
    Question(
        "What is the largest mammal in the world?",
        ("African Elephant", "Blue Whale", "Giraffe", "White Rhinoceros"),
        1,
    ),
    Question(
        "Who painted the Mona Lisa?",
        ("Vincent van Gogh", "Pablo Picasso", "Leonardo da Vinci", "Michelangelo"),
        2,
    ),
    Question("What is the chemical symbol for gold?", ("Ag", "Fe", "Au", "Cu"), 2),
)


@dataclass(frozen=True)
class AnswerResult:
    correct: bool
    outcome: DisbursementOutcome | None
    game_over: bool


class QuizSession:
    """
    One pass through the question bank.

    A correct answer bumps the score and asks the engine for a reward; the
    quiz never waits for reconciliation and never fails because of a payment.
    """

    def __init__(
        self,
        engine: RewardEngine,
        wallet: WalletSession,
        questions: tuple[Question, ...] = DEFAULT_QUESTIONS,
    ):
        if not questions:
            raise ValueError("Quiz needs at least one question")
        self.engine = engine
        self.wallet = wallet
        self.questions = questions

        self.current_index = 0
        self.score = 0
        self.game_over = False
        # Reward shown to the player; cleared by a wrong answer or reset
        self.last_reward: DisbursementResult | None = None

    @property
    def current_question(self) -> Question | None:
        if self.game_over:
            return None
        return self.questions[self.current_index]

    async def answer(self, option: int) -> AnswerResult:
        question = self.current_question
        if question is None:
            raise RuntimeError("Game is over, reset to play again")
        if not 0 <= option < len(question.options):
            raise ValueError(f"Option {option} out of range")

        outcome: DisbursementOutcome | None = None
        correct = option == question.correct

        if correct:
            self.score += 1
            outcome = await self.engine.on_correct_answer(self.wallet)
            if outcome.result is not None:
                self.last_reward = outcome.result
        else:
            self.last_reward = None

        if self.current_index < len(self.questions) - 1:
            self.current_index += 1
        else:
            self.game_over = True
            logger.info(f"Quiz finished: {self.score}/{len(self.questions)}")

        return AnswerResult(correct=correct, outcome=outcome, game_over=self.game_over)

    def reset(self) -> None:
        self.current_index = 0
        self.score = 0
        self.game_over = False
        self.last_reward = None
