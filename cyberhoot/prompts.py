"""Prompt templates for question generation, grading and explanations."""
from __future__ import annotations

MCQ_QUESTION_PROMPT = """\
You are a professional cybersecurity instructor writing quiz questions.

Produce exactly {count} multiple-choice question(s) at difficulty {difficulty} \
(scale 1-10) in {language} about: {topic}

Instructions:
1. Each question has EXACTLY four options. Do not prefix options with letters.
2. Exactly one option is correct. Give it in "correct" as the letter A, B, C or D.
3. Give "solvingTime": the number of seconds a prepared student needs (10-90).
4. Give "topic": a short category name for the topic you were asked about.

Respond in this exact JSON format only, with no other text:
{{
  "topic": "Network Security",
  "questions": [
    {{
      "text": "question text",
      "options": ["option 1", "option 2", "option 3", "option 4"],
      "correct": "B",
      "solvingTime": 30
    }}
  ]
}}
"""

OPEN_QUESTION_PROMPT = """\
You are a professional cybersecurity instructor writing quiz questions.

Produce exactly {count} open-ended question(s) at difficulty {difficulty} \
(scale 1-10) in {language} about: {topic}

Instructions:
1. Each question must be answerable in a few sentences.
2. Give "answer": a short model answer used for grading.
3. Give "solvingTime": the number of seconds a prepared student needs (30-180).
4. Give "topic": a short category name for the topic you were asked about.

Respond in this exact JSON format only, with no other text:
{{
  "topic": "Cryptography",
  "questions": [
    {{
      "text": "question text",
      "answer": "model answer",
      "solvingTime": 90
    }}
  ]
}}
"""

OPEN_EVAL_PROMPT = """\
You are an examiner. Grade the candidate's answer from 0 to 100 and state \
whether it is essentially correct. Also give a one-sentence explanation.

Question: {question}
Candidate answer: {answer}

Respond ONLY with raw JSON (no markdown, no backticks) like:
{{"correct": true, "score": 90, "explanation": "...", "solvingTime": 60}}
"solvingTime" is optional: your suggested seconds for the next question.
"""

EXPLAIN_PROMPT = """\
Explain concisely (2-4 sentences) why the following is the correct answer.

Question: {question}
Correct answer: {correct}
"""


def format_validation_feedback(reason: str) -> str:
    return (
        f"\n\nYour previous response had errors: {reason}\n"
        "Please fix and respond with corrected JSON only."
    )
