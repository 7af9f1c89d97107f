"""initial_schema_documents_chunks_questions

Revision ID: 3f2a8c1d7e55
Revises:
Create Date: 2026-10-19 10:04:12.518204+00:00

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from pgvector.sqlalchemy import Vector

# revision identifiers, used by Alembic.
revision: str = "3f2a8c1d7e55"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Enable pgvector extension
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    document_type_enum = sa.Enum(
        "LAW",
        "DECREE",
        "JURISPRUDENCE",
        "DOCTRINE",
        "CONSTITUTION",
        "CODE",
        "STUDY_MATERIAL",
        "CASE_STUDY",
        "REGULATION",
        name="documenttype",
    )
    difficulty_enum = sa.Enum("BASIC", "INTERMEDIATE", "ADVANCED", name="difficultylevel")
    question_type_enum = sa.Enum("MULTIPLE_CHOICE", "TRUE_FALSE", name="questiontype")

    # --- documents table ---
    op.create_table(
        "documents",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column(
            "document_type", document_type_enum, nullable=False, server_default="STUDY_MATERIAL"
        ),
        sa.Column("legal_areas", sa.dialects.postgresql.JSONB(), nullable=False),
        sa.Column("key_concepts", sa.dialects.postgresql.JSONB(), nullable=False),
        sa.Column("difficulty", difficulty_enum, nullable=False, server_default="INTERMEDIATE"),
        sa.Column("articles", sa.dialects.postgresql.JSONB(), nullable=False),
        sa.Column("cases", sa.dialects.postgresql.JSONB(), nullable=False),
        sa.Column("source", sa.String(50), nullable=False, server_default="Upload"),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("mime_type", sa.String(100), nullable=False, server_default="text/plain"),
        sa.Column("total_characters", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("processed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )

    # --- chunks table (fragment store) ---
    op.create_table(
        "chunks",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column(
            "document_id",
            sa.UUID(),
            sa.ForeignKey("documents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("chunk_id", sa.String(100), nullable=False, unique=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("embedding", Vector(384), nullable=False),
        sa.Column("chunk_index", sa.Integer(), nullable=False),
        sa.Column("metadata", sa.dialects.postgresql.JSONB(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )

    # --- questions table ---
    op.create_table(
        "questions",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("question_type", question_type_enum, nullable=False),
        sa.Column("options", sa.dialects.postgresql.JSONB(), nullable=False),
        sa.Column("correct_answer", sa.Text(), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=False, server_default=""),
        sa.Column("legal_area", sa.String(500), nullable=False, server_default=""),
        sa.Column("related_concepts", sa.dialects.postgresql.JSONB(), nullable=False),
        sa.Column("difficulty", difficulty_enum, nullable=False, server_default="INTERMEDIATE"),
        sa.Column(
            "source_document_id",
            sa.UUID(),
            sa.ForeignKey("documents.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )

    # --- indexes ---
    op.create_index(
        "ix_chunks_embedding_cosine",
        "chunks",
        ["embedding"],
        postgresql_using="ivfflat",
        postgresql_with={"lists": 100},
        postgresql_ops={"embedding": "vector_cosine_ops"},
    )
    op.create_index("ix_chunks_document_index", "chunks", ["document_id", "chunk_index"])
    op.create_index(
        "ix_chunks_metadata",
        "chunks",
        ["metadata"],
        postgresql_using="gin",
    )
    op.create_index("ix_questions_source_document", "questions", ["source_document_id"])


def downgrade() -> None:
    op.drop_index("ix_questions_source_document", table_name="questions")
    op.drop_index("ix_chunks_metadata", table_name="chunks")
    op.drop_index("ix_chunks_document_index", table_name="chunks")
    op.drop_index("ix_chunks_embedding_cosine", table_name="chunks")
    op.drop_table("questions")
    op.drop_table("chunks")
    op.drop_table("documents")
    sa.Enum(name="questiontype").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="difficultylevel").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="documenttype").drop(op.get_bind(), checkfirst=True)
    op.execute("DROP EXTENSION IF EXISTS vector")
