"""SQLite storage for estate profiles and family graphs."""

import json
import logging
import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from souzoku.assets import assets_from_dict
from souzoku.models import (
    ActionItem,
    Adoption,
    AssetData,
    DashboardData,
    DiagnosisResult,
    FamilyData,
    FamilyGraph,
    FamilyMember,
    ParentChildEdge,
    Person,
    PersonStatus,
    SiblingEdge,
    Step,
    TaxCalculation,
    UnionEdge,
    UnionStatus,
)

logger = logging.getLogger(__name__)


class ProfileNotFoundError(LookupError):
    """No profile with this id belongs to the user."""


@dataclass(frozen=True)
class EstateProfile:
    family_data: FamilyData = FamilyData()
    asset_data: AssetData = AssetData()
    dashboard_data: DashboardData = DashboardData()
    tax_calculation: TaxCalculation = TaxCalculation()
    current_step: Step = Step.INTRO
    id: str | None = None
    label: str | None = None
    notes: str | None = None
    user_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "label": self.label,
            "notes": self.notes,
            "currentStep": self.current_step.value,
            "familyData": self.family_data.to_dict(),
            "assetData": self.asset_data.to_dict(),
            "dashboardData": self.dashboard_data.to_dict(),
            "taxCalculation": self.tax_calculation.to_dict(),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EstateProfile":
        try:
            step = Step(data.get("currentStep", Step.INTRO.value))
        except ValueError:
            step = Step.INTRO
        return cls(
            id=data.get("id"),
            label=data.get("label"),
            notes=data.get("notes"),
            current_step=step,
            family_data=FamilyData.from_dict(data.get("familyData")),
            asset_data=assets_from_dict(data.get("assetData")),
            dashboard_data=DashboardData.from_dict(data.get("dashboardData")),
            tax_calculation=TaxCalculation.from_dict(data.get("taxCalculation")),
        )


@dataclass(frozen=True)
class SaveResult:
    id: str
    created: bool = False


def create_database(db_path: Path | str) -> sqlite3.Connection:
    """Create the SQLite database with profile and family graph tables."""
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA foreign_keys = ON")
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS estate_profile (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            label TEXT,
            notes TEXT,
            current_step TEXT NOT NULL DEFAULT 'intro',
            has_asset_data INTEGER NOT NULL DEFAULT 0,
            family_data TEXT NOT NULL,
            asset_data TEXT NOT NULL,
            tax_calculation TEXT NOT NULL,
            diagnosis_summary TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS profile_family_member (
            profile_id TEXT NOT NULL,
            member_key TEXT NOT NULL,
            name TEXT NOT NULL,
            relationship TEXT NOT NULL,
            is_deceased INTEGER NOT NULL DEFAULT 0,
            inheritance_share REAL,
            inheritance_amount_manen INTEGER,
            inheritance_tax_manen INTEGER,
            order_index INTEGER NOT NULL,
            PRIMARY KEY (profile_id, member_key),
            FOREIGN KEY (profile_id) REFERENCES estate_profile(id) ON DELETE CASCADE
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS profile_action_item (
            profile_id TEXT NOT NULL,
            item_key TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT NOT NULL,
            priority TEXT NOT NULL,
            completed INTEGER NOT NULL DEFAULT 0,
            due_date TEXT,
            estimated_cost_yen INTEGER,
            order_index INTEGER NOT NULL,
            PRIMARY KEY (profile_id, item_key),
            FOREIGN KEY (profile_id) REFERENCES estate_profile(id) ON DELETE CASCADE
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS person (
            profile_id TEXT NOT NULL,
            id TEXT NOT NULL,
            name TEXT NOT NULL,
            status TEXT NOT NULL,
            age INTEGER,
            sex TEXT,
            renounced INTEGER NOT NULL DEFAULT 0,
            disqualified INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (profile_id, id),
            FOREIGN KEY (profile_id) REFERENCES estate_profile(id) ON DELETE CASCADE
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS relationship (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            profile_id TEXT NOT NULL,
            person1_id TEXT NOT NULL,
            person2_id TEXT NOT NULL,
            relationship_type TEXT NOT NULL,
            union_id TEXT,
            status TEXT,
            adoption TEXT,
            half_blood INTEGER,
            start_year INTEGER,
            end_year INTEGER,
            FOREIGN KEY (profile_id) REFERENCES estate_profile(id) ON DELETE CASCADE
        )
    """)

    conn.commit()
    return conn


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _profile_exists(conn: sqlite3.Connection, user_id: str, profile_id: str) -> bool:
    cursor = conn.execute(
        "SELECT 1 FROM estate_profile WHERE id = ? AND user_id = ?", (profile_id, user_id)
    )
    return cursor.fetchone() is not None


def save_profile(conn: sqlite3.Connection, user_id: str, payload: EstateProfile) -> SaveResult:
    """
    Insert a new profile, or replace an existing one when `payload.id` is set.

    Raises:
        ProfileNotFoundError: `payload.id` does not name a profile of this user
    """
    profile_id = payload.id or str(uuid.uuid4())
    timestamp = _now()
    dashboard = payload.dashboard_data
    columns = (
        payload.label,
        payload.notes,
        payload.current_step.value,
        int(dashboard.has_asset_data),
        json.dumps(payload.family_data.to_dict(), ensure_ascii=False),
        json.dumps(payload.asset_data.to_dict(), ensure_ascii=False),
        json.dumps(payload.tax_calculation.to_dict(), ensure_ascii=False),
        json.dumps(dashboard.diagnosis_result.to_dict(), ensure_ascii=False),
    )

    with conn:
        cursor = conn.cursor()
        if payload.id:
            if not _profile_exists(conn, user_id, profile_id):
                raise ProfileNotFoundError(f"Profile {profile_id} not found")
            cursor.execute(
                """
                UPDATE estate_profile
                SET label = ?, notes = ?, current_step = ?, has_asset_data = ?, family_data = ?,
                    asset_data = ?, tax_calculation = ?, diagnosis_summary = ?, updated_at = ?
                WHERE id = ? AND user_id = ?
                """,
                (*columns, timestamp, profile_id, user_id),
            )
            cursor.execute("DELETE FROM profile_family_member WHERE profile_id = ?", (profile_id,))
            cursor.execute("DELETE FROM profile_action_item WHERE profile_id = ?", (profile_id,))
        else:
            cursor.execute(
                """
                INSERT INTO estate_profile
                (id, user_id, label, notes, current_step, has_asset_data, family_data, asset_data,
                 tax_calculation, diagnosis_summary, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (profile_id, user_id, *columns, timestamp, timestamp),
            )

        cursor.executemany(
            """
            INSERT INTO profile_family_member
            (profile_id, member_key, name, relationship, is_deceased, inheritance_share,
             inheritance_amount_manen, inheritance_tax_manen, order_index)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    profile_id,
                    m.id,
                    m.name,
                    m.relationship,
                    int(m.is_deceased),
                    m.inheritance_share,
                    m.inheritance_amount,
                    m.inheritance_tax,
                    index,
                )
                for index, m in enumerate(dashboard.family_members)
            ],
        )
        cursor.executemany(
            """
            INSERT INTO profile_action_item
            (profile_id, item_key, title, description, priority, completed, due_date,
             estimated_cost_yen, order_index)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    profile_id,
                    a.id,
                    a.title,
                    a.description,
                    a.priority,
                    int(a.completed),
                    a.due_date,
                    a.estimated_cost,
                    index,
                )
                for index, a in enumerate(dashboard.action_items)
            ],
        )

    logger.info("Saved profile %s for user %s", profile_id, user_id)
    return SaveResult(id=profile_id, created=not payload.id)


def _load_dashboard(
    conn: sqlite3.Connection, profile_id: str, has_asset_data: bool, summary: str
) -> DashboardData:
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT member_key, name, relationship, is_deceased, inheritance_share,
               inheritance_amount_manen, inheritance_tax_manen
        FROM profile_family_member WHERE profile_id = ? ORDER BY order_index
        """,
        (profile_id,),
    )
    members = tuple(
        FamilyMember(
            id=row[0],
            name=row[1],
            relationship=row[2],
            is_deceased=bool(row[3]),
            inheritance_share=row[4],
            inheritance_amount=row[5],
            inheritance_tax=row[6],
        )
        for row in cursor.fetchall()
    )

    cursor.execute(
        """
        SELECT item_key, title, description, priority, completed, due_date, estimated_cost_yen
        FROM profile_action_item WHERE profile_id = ? ORDER BY order_index
        """,
        (profile_id,),
    )
    items = tuple(
        ActionItem(
            id=row[0],
            title=row[1],
            description=row[2],
            priority=row[3],
            completed=bool(row[4]),
            due_date=row[5],
            estimated_cost=row[6],
        )
        for row in cursor.fetchall()
    )

    return DashboardData(
        family_members=members,
        action_items=items,
        diagnosis_result=DiagnosisResult.from_dict(json.loads(summary)),
        has_asset_data=has_asset_data,
    )


_PROFILE_COLUMNS = """
    id, user_id, label, notes, current_step, has_asset_data, family_data, asset_data,
    tax_calculation, diagnosis_summary, created_at, updated_at
"""


def _row_to_profile(conn: sqlite3.Connection, row: tuple) -> EstateProfile:
    try:
        step = Step(row[4])
    except ValueError:
        step = Step.INTRO
    return EstateProfile(
        id=row[0],
        user_id=row[1],
        label=row[2],
        notes=row[3],
        current_step=step,
        family_data=FamilyData.from_dict(json.loads(row[6])),
        asset_data=assets_from_dict(json.loads(row[7])),
        tax_calculation=TaxCalculation.from_dict(json.loads(row[8])),
        dashboard_data=_load_dashboard(conn, row[0], bool(row[5]), row[9]),
        created_at=row[10],
        updated_at=row[11],
    )


def load_profile(conn: sqlite3.Connection, user_id: str, profile_id: str) -> EstateProfile:
    """
    Raises:
        ProfileNotFoundError: no such profile for this user
    """
    cursor = conn.execute(
        f"SELECT {_PROFILE_COLUMNS} FROM estate_profile WHERE id = ? AND user_id = ?",
        (profile_id, user_id),
    )
    row = cursor.fetchone()
    if row is None:
        raise ProfileNotFoundError(f"Profile {profile_id} not found")
    return _row_to_profile(conn, row)


def latest_profile(conn: sqlite3.Connection, user_id: str) -> EstateProfile | None:
    cursor = conn.execute(
        f"SELECT {_PROFILE_COLUMNS} FROM estate_profile WHERE user_id = ? "
        "ORDER BY updated_at DESC, rowid DESC LIMIT 1",
        (user_id,),
    )
    row = cursor.fetchone()
    return _row_to_profile(conn, row) if row else None


def store_graph(conn: sqlite3.Connection, profile_id: str, graph: FamilyGraph):
    """Replace the persons and relationships stored for a profile, all or nothing."""
    with conn:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM person WHERE profile_id = ?", (profile_id,))
        cursor.execute("DELETE FROM relationship WHERE profile_id = ?", (profile_id,))

        cursor.executemany(
            """
            INSERT INTO person (profile_id, id, name, status, age, sex, renounced, disqualified)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    profile_id,
                    p.id,
                    p.name,
                    p.status.value,
                    p.age,
                    p.sex,
                    int(p.renounced),
                    int(p.disqualified),
                )
                for p in graph.persons.values()
            ],
        )

        rows = [
            (profile_id, e.parent_id, e.child_id, "PARENT_OF", None, None, e.adoption.value, None, None, None)
            for e in graph.parent_child
        ]
        rows += [
            (profile_id, u.a, u.b, "SPOUSE_OF", u.id, u.status.value, None, None, u.start_year, u.end_year)
            for u in graph.unions
        ]
        rows += [
            (profile_id, e.a, e.b, "SIBLING_OF", None, None, None, int(e.half_blood), None, None)
            for e in graph.siblings
        ]
        cursor.executemany(
            """
            INSERT INTO relationship
            (profile_id, person1_id, person2_id, relationship_type, union_id, status, adoption,
             half_blood, start_year, end_year)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            rows,
        )


def load_graph(conn: sqlite3.Connection, profile_id: str) -> FamilyGraph:
    """Rebuild the family graph stored for a profile (empty if none)."""
    cursor = conn.cursor()

    cursor.execute(
        "SELECT id, name, status, age, sex, renounced, disqualified FROM person "
        "WHERE profile_id = ? ORDER BY rowid",
        (profile_id,),
    )
    persons = {
        row[0]: Person(
            id=row[0],
            name=row[1],
            status=PersonStatus(row[2]),
            age=row[3],
            sex=row[4],
            renounced=bool(row[5]),
            disqualified=bool(row[6]),
        )
        for row in cursor.fetchall()
    }

    cursor.execute(
        """
        SELECT person1_id, person2_id, relationship_type, union_id, status, adoption, half_blood,
               start_year, end_year
        FROM relationship WHERE profile_id = ? ORDER BY id
        """,
        (profile_id,),
    )
    parent_child, unions, siblings = [], [], []
    for p1, p2, rel_type, u_id, status, adoption, half_blood, start, end in cursor.fetchall():
        if rel_type == "PARENT_OF":
            parent_child.append(ParentChildEdge(p1, p2, Adoption(adoption or Adoption.NONE.value)))
        elif rel_type == "SPOUSE_OF":
            unions.append(UnionEdge(u_id, p1, p2, UnionStatus(status), start, end))
        elif rel_type == "SIBLING_OF":
            siblings.append(SiblingEdge(p1, p2, bool(half_blood)))

    return FamilyGraph(
        persons=persons,
        parent_child=tuple(parent_child),
        unions=tuple(unions),
        siblings=tuple(siblings),
    )
