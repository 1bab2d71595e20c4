"""Bulk import of mentees and mentors from Excel/CSV uploads.

Each row is committed on its own, so one bad row never sinks the batch.
Existing USNs (mentees) and existing usernames (mentors) are updated in place.
"""
import io
import logging
import re

import pandas as pd
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Mentee, Mentor, Role, User
from .accounts import (ValidationError, create_mentee, create_mentor, mentor_username,
                       normalize_usn, parse_semester)
from .assignment import RoundRobin, assign_unassigned_mentees
from .errors import log_error
from .notify import notify_roles

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"xlsx", "csv"}
ASSIGNMENT_METHODS = ("balanced", "equal", "manual")

MENTEE_COLUMNS = {
    "usn": ("usn",),
    "name": ("name", "fullname", "studentname"),
    "email": ("email", "emailaddress"),
    "semester": ("semester", "sem"),
    "section": ("section",),
    "mobile_number": ("mobilenumber", "mobile", "phone"),
    "parent_mobile_number": ("parentmobilenumber", "parentmobile", "parentphone"),
    "mentor_id": ("mentorid",),
    "mentor_username": ("mentorusername", "mentor", "mentorname"),
}

MENTOR_COLUMNS = {
    "name": ("name", "fullname"),
    "email": ("email", "emailaddress"),
    "mobile_number": ("mobilenumber", "mobile", "phone"),
    "department": ("department", "dept"),
    "specialization": ("specialization", "designation", "title", "position"),
}


class ImportFileError(ValueError):
    pass


def _column_key(name):
    return re.sub(r"[^a-z0-9]", "", str(name).lower())


def _clean(value):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def read_table(file_storage):
    """Parse the first sheet of an uploaded .xlsx/.csv into a list of dicts."""
    filename = (file_storage.filename or "").lower()
    ext = filename.rsplit(".", 1)[-1] if "." in filename else ""
    if ext not in ALLOWED_EXTENSIONS:
        raise ImportFileError("Only .xlsx and .csv files are supported")

    buf = io.BytesIO(file_storage.read())
    try:
        if ext == "csv":
            try:
                df = pd.read_csv(buf, dtype=str)
            except UnicodeDecodeError:
                buf.seek(0)
                df = pd.read_csv(buf, dtype=str, encoding="latin-1")
        else:
            df = pd.read_excel(buf, sheet_name=0, dtype=str, engine="openpyxl")
    except pd.errors.EmptyDataError:
        raise ImportFileError("File is empty or has invalid format")
    except (pd.errors.ParserError, ValueError, OSError) as exc:
        raise ImportFileError(f"Could not read file: {exc}")

    df = df.dropna(how="all")
    if df.empty:
        raise ImportFileError("File is empty or has invalid format")
    df = df.astype(object).where(df.notna(), None)
    return df.to_dict(orient="records")


def canonical_row(raw, columns):
    keyed = {_column_key(k): v for k, v in raw.items()}
    row = {}
    for field, aliases in columns.items():
        row[field] = next((_clean(keyed[a]) for a in aliases if _clean(keyed.get(a))), None)
    return row


class ImportReport:

    def __init__(self, kind):
        self.kind = kind
        self.created = 0
        self.updated = 0
        self.results = []
        self.errors = []
        self.warnings = []

    @property
    def failed(self):
        return len(self.errors)

    @property
    def imported(self):
        return self.created + self.updated

    def ok(self, line, key, name, status):
        if status == "created":
            self.created += 1
        else:
            self.updated += 1
        self.results.append({"row": line, "key": key, "name": name, "status": status})

    def fail(self, line, key, message):
        self.errors.append({"row": line, "key": key, "error": message})
        logger.warning("%s import row %d failed: %s", self.kind, line, message)

    def warn(self, line, message):
        self.warnings.append({"row": line, "warning": message})

    def summary(self):
        return f"{self.imported} {self.kind} imported successfully, {self.failed} failed"

    def to_dict(self):
        return {
            "success": True,
            "message": self.summary(),
            "imported": self.imported,
            "created": self.created,
            "updated": self.updated,
            "failed": self.failed,
            "results": self.results,
            "errors": self.errors,
            "warnings": self.warnings,
        }


class MentorResolver:
    """Maps a spreadsheet mentor reference (id, username or display name) to a mentor id."""

    def resolve(self, row):
        raw_id, raw_name = row.get("mentor_id"), row.get("mentor_username")
        if raw_id:
            try:
                mentor = db.session.get(Mentor, int(float(raw_id)))
            except (TypeError, ValueError):
                return None, f"MentorId '{raw_id}' is not a valid number"
            if mentor is not None:
                return mentor.id, None
            if not raw_name:
                return None, f"MentorId '{raw_id}' not found"
        if not raw_name:
            return None, None

        normalized = re.sub(r"[^a-z0-9.]", "", re.sub(r"\s+", ".", raw_name.strip().lower()))
        for candidate in (normalized, normalized.replace(".", "")):
            if not candidate:
                continue
            user = User.query.filter_by(username=candidate).first()
            if user is not None and user.mentor is not None:
                return user.mentor.id, None

        wanted = " ".join(raw_name.lower().split())
        for mentor in Mentor.query.all():
            if " ".join((mentor.name or "").lower().split()) == wanted:
                return mentor.id, None
        return None, f"Mentor identifier '{raw_name}' not found"


class MenteeImporter:

    def __init__(self, assignment_method="balanced", owner=None, acting_user_id=None):
        if assignment_method not in ASSIGNMENT_METHODS:
            raise ImportFileError(f"Unknown assignment method '{assignment_method}'")
        self.method = assignment_method
        self.owner_id = owner.id if owner is not None else None
        self.acting_user_id = acting_user_id
        self.resolver = MentorResolver()
        self.round_robin = None
        if self.method == "equal" and self.owner_id is None:
            self.round_robin = RoundRobin(Mentor.query.filter_by(is_active=True).all())

    def run(self, rows):
        report = ImportReport("mentees")
        for i, raw in enumerate(rows):
            line = i + 2
            row = canonical_row(raw, MENTEE_COLUMNS)
            try:
                status, mentee = self._upsert(row, line, report)
                db.session.commit()
            except ValidationError as exc:
                db.session.rollback()
                report.fail(line, row.get("usn"), str(exc))
                continue
            except IntegrityError as exc:
                db.session.rollback()
                report.fail(line, row.get("usn"), f"Duplicate or invalid data ({exc.orig})")
                continue
            report.ok(line, mentee.usn, row.get("name"), status)

        assignment = None
        if self.method == "balanced" and self.owner_id is None:
            assignment = assign_unassigned_mentees(commit=False)
        if report.imported:
            text = f"{report.imported} mentees imported"
            if self.owner_id is None and self.method != "manual":
                text += " and automatically assigned to mentors"
            notify_roles(text, [Role.ADMIN, Role.MENTOR])
        db.session.commit()
        self._log_partial(report)

        logger.info("Mentee import: %s", report.summary())
        data = report.to_dict()
        if assignment is not None:
            data["assignment"] = assignment
        return data

    def _upsert(self, row, line, report):
        usn, name = normalize_usn(row.get("usn")), row.get("name")
        if not usn or not name:
            raise ValidationError("Missing required fields (usn, name)")
        semester = parse_semester(row.get("semester"), default=1)

        if self.owner_id is not None:
            mentor_id = self.owner_id
        else:
            mentor_id, warning = self.resolver.resolve(row)
            if warning:
                report.warn(line, warning)

        existing = Mentee.query.filter_by(usn=usn).first()
        if existing is not None:
            if self.owner_id is not None and existing.mentor_id not in (None, self.owner_id):
                raise ValidationError(f"Student with USN {usn} is assigned to another mentor")
            existing.semester = semester
            existing.section = row.get("section") or existing.section
            existing.mobile_number = row.get("mobile_number") or existing.mobile_number
            existing.parent_mobile_number = (row.get("parent_mobile_number")
                                             or existing.parent_mobile_number)
            if mentor_id is not None:
                existing.mentor_id = mentor_id
            existing.user.name = name
            if row.get("email"):
                existing.user.email = row["email"]
            return "updated", existing

        if not row.get("section"):
            raise ValidationError("Missing required field (section)")
        if mentor_id is None and self.round_robin is not None:
            mentor_id = self.round_robin.pick()
        mentee = create_mentee(name=name, usn=usn, semester=semester, section=row["section"],
                               email=row.get("email"), mentor_id=mentor_id,
                               mobile_number=row.get("mobile_number"),
                               parent_mobile_number=row.get("parent_mobile_number"))
        return "created", mentee

    def _log_partial(self, report):
        if report.failed:
            log_error(self.acting_user_id, "upload_mentees_partial", report.summary(),
                      "\n".join(f"Row {e['row']}: {e['error']}" for e in report.errors))


class MentorImporter:

    def __init__(self, acting_user_id=None):
        self.acting_user_id = acting_user_id

    def run(self, rows):
        report = ImportReport("mentors")
        for i, raw in enumerate(rows):
            line = i + 2
            row = canonical_row(raw, MENTOR_COLUMNS)
            try:
                status, mentor = self._upsert(row)
                db.session.commit()
            except ValidationError as exc:
                db.session.rollback()
                report.fail(line, row.get("name"), str(exc))
                continue
            except IntegrityError as exc:
                db.session.rollback()
                report.fail(line, row.get("name"), f"Duplicate or invalid data ({exc.orig})")
                continue
            report.ok(line, mentor.user.username, row.get("name"), status)

        if report.imported:
            notify_roles(f"{report.imported} mentors imported successfully", [Role.ADMIN])
            db.session.commit()
        if report.failed:
            log_error(self.acting_user_id, "upload_mentors_partial", report.summary(),
                      "\n".join(f"Row {e['row']}: {e['error']}" for e in report.errors))
        logger.info("Mentor import: %s", report.summary())
        return report.to_dict()

    def _upsert(self, row):
        name, department = row.get("name"), row.get("department")
        if not name or not department:
            raise ValidationError("Missing required fields (name, department)")

        user = User.query.filter_by(username=mentor_username(name, row.get("email"))).first()
        if user is not None and user.mentor is not None:
            mentor = user.mentor
            mentor.department = department
            mentor.specialization = row.get("specialization") or mentor.specialization
            mentor.mobile_number = row.get("mobile_number") or mentor.mobile_number
            user.name = name
            if row.get("email"):
                user.email = row["email"]
            return "updated", mentor

        mentor, created = create_mentor(name=name, email=row.get("email"), department=department,
                                        specialization=row.get("specialization"),
                                        mobile_number=row.get("mobile_number"))
        return ("created" if created else "updated"), mentor
