from __future__ import annotations
from pydantic import BaseModel, ConfigDict


LESSON_INSTRUCTION = (
	"Generate comprehensive educational information and lesson content based on this input. "
	"Provide detailed explanations, examples, and structured learning material"
)

QUIZ_INSTRUCTION = (
	"Based on the following lesson content, generate exactly 5 multiple choice quiz questions. "
	"For each question, provide 4 options (A, B, C, D) and clearly indicate the correct answer. "
	"Format as follows:\n\n"
	"Question 1: [question text]\n"
	"A) [option A]\n"
	"B) [option B]\n"
	"C) [option C]\n"
	"D) [option D]\n"
	"Correct Answer: [letter]\n\n"
	"Lesson content"
)


class CompositePrompt(BaseModel):
	"""Fixed instruction plus the caller's subject text.

	Chat backends may send the two halves as separate system/user messages;
	everything else sends ``text``.
	"""

	model_config = ConfigDict(frozen=True)

	instruction: str
	subject: str

	@property
	def text(self) -> str:
		return f"{self.instruction}: {self.subject}"


def lesson_prompt(subject: str) -> CompositePrompt:
	return CompositePrompt(instruction=LESSON_INSTRUCTION, subject=subject)


def quiz_prompt(lesson_content: str) -> CompositePrompt:
	return CompositePrompt(instruction=QUIZ_INSTRUCTION, subject=lesson_content)
