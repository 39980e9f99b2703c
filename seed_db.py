"""One-time DB setup: create tables and seed a demo quiz and default rubric."""
from quiz_engine.db.session import Base, get_engine, session_scope
from quiz_engine.db.models import Quiz, QuestionVariant
from quiz_engine.schemas.question import QuestionCreate
from quiz_engine.schemas.quiz import QuizCreate
from quiz_engine.services.quizzes import add_question, create_quiz
from quiz_engine.services.rubrics import seed_default_rubric

DEMO_ORG = "demo-org"
DEMO_COURSE = "demo-course"
SYSTEM_USER = "system"

# 1. Create all tables
engine = get_engine()
Base.metadata.create_all(bind=engine)
print("✅ All tables created")

with session_scope() as db:
    # 2. Default rubric for the demo organization
    rubric = seed_default_rubric(db, DEMO_ORG, SYSTEM_USER)
    db.commit()
    print(f"✅ Default rubric ready: {rubric.name}")

    # 3. Demo quiz covering an objective and a subjective question
    quiz = db.query(Quiz).filter(Quiz.course_id == DEMO_COURSE).first()
    if not quiz:
        quiz = create_quiz(
            db,
            QuizCreate(
                course_id=DEMO_COURSE,
                organization_id=DEMO_ORG,
                title="Geography basics",
                max_attempts=3,
                reveal_answers=True,
            ),
            SYSTEM_USER,
        )
        add_question(
            db,
            quiz.id,
            QuestionCreate(
                variant=QuestionVariant.SINGLE_CHOICE,
                question_text="What is the capital of France?",
                points=5,
                variant_data={"options": ["Paris", "Lyon", "Nice"], "correct_answer": "Paris"},
            ),
        )
        add_question(
            db,
            quiz.id,
            QuestionCreate(
                variant=QuestionVariant.FILL_BLANKS,
                question_text="The longest river in Africa is the _____.",
                points=2,
                variant_data={"blank_answers": ["Nile"]},
            ),
        )
        add_question(
            db,
            quiz.id,
            QuestionCreate(
                variant=QuestionVariant.TEXT_ANSWER,
                question_text="Explain why coastal climates are milder than inland climates.",
                points=5,
            ),
        )
        quiz.is_published = True
        print(f"✅ Created demo quiz {quiz.id}")
    else:
        print("  Demo quiz already exists")
