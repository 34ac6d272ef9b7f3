"""Fixed question set used when the question source is unavailable."""
from __future__ import annotations

from cyberhoot.models import Difficulty, Question, QuestionKind

_MC = QuestionKind.MULTIPLE_CHOICE
_OPEN = QuestionKind.OPEN_ENDED

FALLBACK_QUESTIONS: dict[str, list[Question]] = {
    "easy": [
        Question(
            id="fallback-1",
            text="Which of the following is a best practice for password security?",
            kind=_MC,
            difficulty=Difficulty.EASY,
            options=[
                "Using the same password for all accounts",
                "Using your name and birthdate",
                "Using a unique password for each account",
                "Sharing your password with trusted friends",
            ],
            correct_answer="Using a unique password for each account",
            topic="Passwords",
        ),
        Question(
            id="fallback-2",
            text="What is phishing?",
            kind=_MC,
            difficulty=Difficulty.EASY,
            options=[
                "A type of fishing sport",
                "A fraudulent attempt to obtain sensitive information by disguising as a trustworthy entity",
                "A secure method of data encryption",
                "A type of firewall",
            ],
            correct_answer="B",
            topic="Social Engineering",
        ),
        Question(
            id="fallback-3",
            text="Which of the following is NOT a sign of a phishing email?",
            kind=_MC,
            difficulty=Difficulty.EASY,
            options=[
                "Misspellings and grammatical errors",
                "Urgent requests for personal information",
                "Suspicious attachments",
                "Email comes from a colleague you regularly work with",
            ],
            correct_answer="Email comes from a colleague you regularly work with",
            topic="Social Engineering",
        ),
    ],
    "medium": [
        Question(
            id="fallback-4",
            text="What is two-factor authentication?",
            kind=_MC,
            difficulty=Difficulty.MEDIUM,
            options=[
                "Using two different passwords for the same account",
                "Having two people approve access to an account",
                "Using two different authentication methods to verify your identity",
                "Logging in twice for extra security",
            ],
            correct_answer="C",
            topic="Authentication",
        ),
        Question(
            id="fallback-5",
            text="Which of the following is NOT typically considered a factor in multi-factor authentication?",
            kind=_MC,
            difficulty=Difficulty.MEDIUM,
            options=[
                "Something you know (password)",
                "Something you have (phone)",
                "Something you are (fingerprint)",
                "Someone you know (friend verification)",
            ],
            correct_answer="Someone you know (friend verification)",
            topic="Authentication",
        ),
        Question(
            id="fallback-6",
            text="What is a man-in-the-middle attack?",
            kind=_MC,
            difficulty=Difficulty.MEDIUM,
            options=[
                "A physical attack on a server room",
                "An attack where the attacker secretly relays or alters communications",
                "A virus that affects only middle-level employees",
                "A DoS attack on network infrastructure",
            ],
            correct_answer="B) An attack where the attacker secretly relays or alters communications",
            topic="Network Security",
        ),
    ],
    "hard": [
        Question(
            id="fallback-7",
            text="What is the purpose of a CSRF token?",
            kind=_MC,
            difficulty=Difficulty.HARD,
            options=[
                "To encrypt sensitive user data",
                "To prevent cross-site request forgery attacks",
                "To validate API access requests",
                "To maintain user sessions across multiple browsers",
            ],
            correct_answer="To prevent cross-site request forgery attacks",
            topic="Web Security",
        ),
        Question(
            id="fallback-8",
            text="Which of these algorithms is still considered secure for symmetric encryption?",
            kind=_MC,
            difficulty=Difficulty.HARD,
            options=["MD5", "SHA-1", "AES-256", "RC4"],
            correct_answer="AES-256",
            topic="Cryptography",
        ),
        Question(
            id="fallback-9",
            text="What is a zero-day vulnerability?",
            kind=_MC,
            difficulty=Difficulty.HARD,
            options=[
                "A vulnerability discovered after 0 days of software release",
                "A vulnerability that exists for 0 days before being patched",
                "A vulnerability unknown to those who should be fixing it",
                "A vulnerability that has no impact on systems",
            ],
            correct_answer="C",
            topic="Vulnerability Management",
        ),
    ],
    "open_ended": [
        Question(
            id="fallback-10",
            text="Explain the concept of defense in depth and why it's important in cybersecurity.",
            kind=_OPEN,
            difficulty=Difficulty.MEDIUM,
            topic="Security Architecture",
        ),
        Question(
            id="fallback-11",
            text="Describe the potential security implications of using public Wi-Fi networks.",
            kind=_OPEN,
            difficulty=Difficulty.EASY,
            topic="Network Security",
        ),
        Question(
            id="fallback-12",
            text=(
                "Explain the difference between symmetric and asymmetric encryption "
                "and give an example use case for each."
            ),
            kind=_OPEN,
            difficulty=Difficulty.HARD,
            topic="Cryptography",
        ),
    ],
}


def fallback_questions(difficulty: str = "all", question_type: str = "multiple_choice") -> list[Question]:
    """Fallback questions filtered by difficulty ("all" for every level) and type.

    question_type is "multiple_choice", "open_ended" or "all".
    """
    levels = ["easy", "medium", "hard"] if difficulty == "all" else [difficulty]
    questions: list[Question] = []
    if question_type in ("multiple_choice", "all"):
        for level in levels:
            questions.extend(FALLBACK_QUESTIONS.get(level, []))
    if question_type in ("open_ended", "all"):
        questions.extend(
            q for q in FALLBACK_QUESTIONS["open_ended"]
            if difficulty == "all" or q.difficulty.value == difficulty
        )
        if not questions:
            questions.extend(FALLBACK_QUESTIONS["open_ended"])
    return questions
