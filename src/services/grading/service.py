"""
Grading Service - human review of generated products
Graders fetch the next ungraded product, correct its attribute values and
approve or reject it; every grade is recorded inside a grading session
"""

import json
import sqlite3
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, List

from ..catalog.config import (
    ROLE_HUMAN_GRADER,
    GENERATED_PRODUCTS_TABLE,
    GRADING_SESSIONS_TABLE,
    HUMAN_GRADED_TABLE,
    PRODUCT_ATTRIBUTES_TABLE,
)
from ..catalog.database import CatalogDatabase
from ..catalog.models import Product, User
from ..catalog.validator import CatalogValidator
from .models import (
    GradingSubmission,
    GradingStats,
    GradingResponse,
    GradingSession,
)

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Grading submitted successfully"
NO_MORE_PRODUCTS_MESSAGE = "No more products to grade"


class ProductNotGradableError(ValueError):
    """The product is missing, was not generated, or has already been graded"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class GradingService:
    """Human grading workflow on top of the catalog database"""

    def __init__(self, db: CatalogDatabase):
        self.db = db
        self.validator = CatalogValidator()

    def _require_grader(self, user_id: int) -> User:
        user = self.db.get_user(user_id)
        if user is None or user.role != ROLE_HUMAN_GRADER:
            logger.warning(f"User {user_id} attempted grading without grader role")
            raise PermissionError(f"User {user_id} is not a human grader")
        return user

    def get_next_product(self, user_id: int) -> Optional[Product]:
        """
        Next generated product without a grade (lowest id first)

        Returns:
            Product, or None when nothing remains

        Raises:
            PermissionError: If the user is not a human grader
        """
        self._require_grader(user_id)

        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT g.product_id
                FROM {GENERATED_PRODUCTS_TABLE} g
                LEFT JOIN {HUMAN_GRADED_TABLE} h ON h.product_id = g.product_id
                WHERE h.id IS NULL
                ORDER BY g.product_id
                LIMIT 1
                """
            )
            row = cursor.fetchone()

        if row is None:
            logger.info(NO_MORE_PRODUCTS_MESSAGE)
            return None

        return self.db.get_product(row["product_id"])

    def submit_grading(
        self, user_id: int, submission: GradingSubmission
    ) -> GradingResponse:
        """
        Record a grade and apply the grader's corrected values

        Args:
            user_id: Acting grader
            submission: Product id, corrected attributes and verdict

        Returns:
            GradingResponse with the grader's updated statistics

        Raises:
            PermissionError: If the user is not a human grader
            ProductNotGradableError: If the product is unknown, not generated
                or already graded
            ValueError: If an attribute is foreign to the product or a value
                does not fit its attribute
        """
        self._require_grader(user_id)

        product = self.db.get_product(submission.product_id)
        if product is None:
            raise ProductNotGradableError(f"Product {submission.product_id} not found")

        definitions = {
            a.id: a for a in self.db.list_category_attributes(product.category_id)
        }
        submitted: Dict[int, str] = {}
        for attribute in submission.attributes:
            if attribute.id not in definitions:
                raise ValueError(
                    f"Attribute {attribute.id} is not defined for product {product.id}"
                )
            submitted[attribute.id] = attribute.value

        errors = self.validator.validate_attribute_values(
            [definitions[aid] for aid in submitted], submitted
        )
        if errors:
            raise ValueError("; ".join(errors))

        current = {a.id: a.value for a in product.attributes}
        final_values = {**current, **submitted}
        human_attributes = {
            definitions[aid].name: value
            for aid, value in final_values.items()
            if aid in definitions
        }

        try:
            with self.db.get_connection() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    f"SELECT ai_attributes FROM {GENERATED_PRODUCTS_TABLE} WHERE product_id = ?",
                    (product.id,),
                )
                generated = cursor.fetchone()
                if generated is None:
                    raise ProductNotGradableError(
                        f"Product {product.id} was not generated by the LLM"
                    )

                cursor.execute(
                    f"SELECT id FROM {HUMAN_GRADED_TABLE} WHERE product_id = ?",
                    (product.id,),
                )
                if cursor.fetchone() is not None:
                    raise ProductNotGradableError(
                        f"Product {product.id} has already been graded"
                    )

                session_id = self._open_session_id(conn, user_id)

                generated_values = json.loads(generated["ai_attributes"] or "{}")
                ai_attributes = {
                    a.name: generated_values.get(a.name, "")
                    for a in product.attributes
                }

                cursor.execute(
                    f"""
                    INSERT INTO {HUMAN_GRADED_TABLE}
                        (product_id, session_id, category_id, ai_attributes,
                         human_attributes, is_approved, graded_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        product.id,
                        session_id,
                        product.category_id,
                        json.dumps(ai_attributes, ensure_ascii=False),
                        json.dumps(human_attributes, ensure_ascii=False),
                        int(submission.approved),
                        _now(),
                    ),
                )

                cursor.executemany(
                    f"""
                    INSERT INTO {PRODUCT_ATTRIBUTES_TABLE} (product_id, attribute_id, value)
                    VALUES (?, ?, ?)
                    ON CONFLICT (product_id, attribute_id) DO UPDATE SET value = excluded.value
                    """,
                    [(product.id, aid, value) for aid, value in submitted.items()],
                )
        except sqlite3.IntegrityError:
            raise ProductNotGradableError(f"Product {product.id} has already been graded")

        logger.info(
            f"User {user_id} graded product {product.id} "
            f"({'approved' if submission.approved else 'rejected'}, "
            f"{len(submitted)} attributes submitted)"
        )

        return GradingResponse(
            message=SUCCESS_MESSAGE, stats=self.get_grading_stats(user_id)
        )

    def _open_session_id(self, conn: sqlite3.Connection, user_id: int) -> int:
        """Reuse the user's open session or start a new one"""
        cursor = conn.cursor()
        cursor.execute(
            f"""
            SELECT id FROM {GRADING_SESSIONS_TABLE}
            WHERE user_id = ? AND completed_at IS NULL
            ORDER BY id DESC LIMIT 1
            """,
            (user_id,),
        )
        row = cursor.fetchone()
        if row is not None:
            return row["id"]

        cursor.execute(
            f"INSERT INTO {GRADING_SESSIONS_TABLE} (user_id, started_at) VALUES (?, ?)",
            (user_id, _now()),
        )
        logger.info(f"Started grading session {cursor.lastrowid} for user {user_id}")
        return cursor.lastrowid

    def get_grading_stats(self, user_id: int) -> GradingStats:
        """
        Statistics over all of a user's sessions

        accuracy is the percentage of graded products whose final values
        equal the AI values (100.0 when nothing is graded).
        """
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT h.ai_attributes, h.human_attributes, h.is_approved
                FROM {HUMAN_GRADED_TABLE} h
                JOIN {GRADING_SESSIONS_TABLE} s ON h.session_id = s.id
                WHERE s.user_id = ?
                """,
                (user_id,),
            )
            rows = cursor.fetchall()

        reviewed = len(rows)
        if reviewed == 0:
            return GradingStats()

        unchanged = 0
        approved = 0
        for row in rows:
            if self._same_values(row["ai_attributes"], row["human_attributes"]):
                unchanged += 1
            if row["is_approved"]:
                approved += 1

        return GradingStats(
            reviewed=reviewed,
            accuracy=round(unchanged / reviewed * 100, 2),
            approved=approved,
            rejected=reviewed - approved,
        )

    def _same_values(self, ai_json: str, human_json: str) -> bool:
        ai = json.loads(ai_json or "{}")
        human = json.loads(human_json or "{}")
        keys = set(ai) | set(human)
        return all(
            str(ai.get(k) or "").strip() == str(human.get(k) or "").strip()
            for k in keys
        )

    def get_open_session(self, user_id: int) -> Optional[GradingSession]:
        sessions = self._fetch_sessions(user_id, open_only=True)
        return sessions[0] if sessions else None

    def list_sessions(self, user_id: int) -> List[GradingSession]:
        return self._fetch_sessions(user_id)

    def _fetch_sessions(
        self, user_id: int, open_only: bool = False
    ) -> List[GradingSession]:
        where = "WHERE s.user_id = ?"
        if open_only:
            where += " AND s.completed_at IS NULL"

        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT s.id, s.user_id, s.started_at, s.completed_at,
                       COUNT(h.id) AS graded_count
                FROM {GRADING_SESSIONS_TABLE} s
                LEFT JOIN {HUMAN_GRADED_TABLE} h ON h.session_id = s.id
                {where}
                GROUP BY s.id
                ORDER BY s.id DESC
                """,
                (user_id,),
            )
            rows = cursor.fetchall()
        return [GradingSession(**dict(row)) for row in rows]

    def complete_session(self, user_id: int) -> Optional[GradingSession]:
        """
        Close the user's open session

        Returns:
            The closed session, or None when no session was open
        """
        session = self.get_open_session(user_id)
        if session is None:
            logger.debug(f"No open grading session for user {user_id}")
            return None

        completed_at = _now()
        with self.db.get_connection() as conn:
            conn.execute(
                f"UPDATE {GRADING_SESSIONS_TABLE} SET completed_at = ? WHERE id = ?",
                (completed_at, session.id),
            )

        logger.info(f"Completed grading session {session.id} for user {user_id}")
        return session.model_copy(update={"completed_at": completed_at})
