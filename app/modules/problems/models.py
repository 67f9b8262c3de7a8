"""
Problem tables.

problem: shared columns for every type
- problem_type: "choice" | "blank" | "judge"
- description, analysis (shown with the answer), user_id, is_public, created_at

problem_choice: options of a choice problem, (problem_id, choice) primary key
problem_blank_answer: expected text of a blank problem
problem_judge_answer: expected truth value of a judge problem
problem_favorite: (user_id, problem_id) join rows
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text

from app.database.sql import metadata

PROBLEM_TYPES = ("choice", "blank", "judge")

problems = Table(
    "problem",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("problem_type", String(16), nullable=False, index=True),
    Column("description", Text, nullable=False),
    Column("analysis", Text, nullable=True),
    Column("user_id", Integer, ForeignKey("user.id"), nullable=False, index=True),
    Column("is_public", Boolean, nullable=False, default=True),
    Column("created_at", DateTime, nullable=False),
)

problem_choices = Table(
    "problem_choice",
    metadata,
    Column("problem_id", Integer, ForeignKey("problem.id"), primary_key=True),
    Column("choice", String(8), primary_key=True),
    Column("description", Text, nullable=False),
    Column("is_correct", Boolean, nullable=False, default=False),
)

problem_blank_answers = Table(
    "problem_blank_answer",
    metadata,
    Column("problem_id", Integer, ForeignKey("problem.id"), primary_key=True),
    Column("answer", Text, nullable=False),
)

problem_judge_answers = Table(
    "problem_judge_answer",
    metadata,
    Column("problem_id", Integer, ForeignKey("problem.id"), primary_key=True),
    Column("is_correct", Boolean, nullable=False),
)

problem_favorites = Table(
    "problem_favorite",
    metadata,
    Column("user_id", Integer, ForeignKey("user.id"), primary_key=True),
    Column("problem_id", Integer, ForeignKey("problem.id"), primary_key=True, index=True),
    Column("created_at", DateTime, nullable=False),
)
