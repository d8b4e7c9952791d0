from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Mapping, Optional

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceRecorder
from .auth.gate import AuthorizationGate
from .auth.tokens import AuthTokenService
from .common.datetime_utils import Clock, now_local
from .core import constants
from .database.connection import DBConfig, DatabaseConnection
from .enrollments.mysql_enrollment_repository import MySQLEnrollmentRepository
from .enrollments.repository import EnrollmentRepository
from .sessions.mysql_event_repository import MySQLRollCallEventRepository
from .sessions.repository import RollCallEventRepository
from .sessions.service import RollCallService
from .sessions.signing import SessionTokenService
from .users.mysql_identity_repository import MySQLIdentityRepository
from .users.repository import IdentityRepository
from .users.service import AuthService, CredentialVerifier, IdentityService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    identities_repo: IdentityRepository
    enrollments_repo: EnrollmentRepository
    events_repo: RollCallEventRepository
    attendance_repo: AttendanceRepository

    gate: AuthorizationGate
    token_service: AuthTokenService
    session_tokens: SessionTokenService
    auth_service: AuthService
    identity_service: IdentityService
    roll_call_service: RollCallService
    attendance_recorder: AttendanceRecorder

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()


def _setting(settings: Any, name: str, default: Any) -> Any:
    if isinstance(settings, Mapping):
        return settings.get(name, default)
    return getattr(settings, name, default)


def assemble(
    settings: Any,
    *,
    identities_repo: IdentityRepository,
    enrollments_repo: EnrollmentRepository,
    events_repo: RollCallEventRepository,
    attendance_repo: AttendanceRepository,
    conn: Optional[DatabaseConnection] = None,
    clock: Clock = now_local,
) -> Container:
    """Wire services over the given repositories (MySQL in production, fakes in tests)."""

    secret_key = _setting(settings, "SECRET_KEY", "")
    gate = AuthorizationGate()
    token_service = AuthTokenService(
        _setting(settings, "AUTH_TOKEN_SECRET", None) or secret_key,
        ttl=timedelta(hours=int(_setting(settings, "AUTH_TOKEN_TTL_HOURS", constants.DEFAULT_AUTH_TOKEN_TTL_HOURS))),
        clock_skew=timedelta(seconds=int(_setting(settings, "CLOCK_SKEW_SECONDS", constants.DEFAULT_CLOCK_SKEW_SECONDS))),
        clock=clock,
    )
    session_tokens = SessionTokenService(
        _setting(settings, "SESSION_SIGNING_SECRET", None) or secret_key,
        validity=timedelta(
            minutes=int(_setting(settings, "SESSION_VALIDITY_MINUTES", constants.DEFAULT_SESSION_VALIDITY_MINUTES))
        ),
        clock=clock,
    )

    auth_service = AuthService(CredentialVerifier(identities_repo), token_service)
    identity_service = IdentityService(identities_repo, gate)
    roll_call_service = RollCallService(events_repo, session_tokens, gate=gate)
    attendance_recorder = AttendanceRecorder(
        attendance_repo,
        events_repo,
        enrollments_repo,
        session_tokens,
        gate=gate,
        strategy_factory=AttendanceStrategyFactory(),
        late_threshold_minutes=int(
            _setting(settings, "LATE_THRESHOLD_MINUTES", constants.DEFAULT_LATE_THRESHOLD_MINUTES)
        ),
        enforce_geofence=bool(_setting(settings, "ENFORCE_GEOFENCE", True)),
        clock=clock,
    )

    return Container(
        conn=conn,
        identities_repo=identities_repo,
        enrollments_repo=enrollments_repo,
        events_repo=events_repo,
        attendance_repo=attendance_repo,
        gate=gate,
        token_service=token_service,
        session_tokens=session_tokens,
        auth_service=auth_service,
        identity_service=identity_service,
        roll_call_service=roll_call_service,
        attendance_recorder=attendance_recorder,
    )


def build_container(*, db_config: dict, settings: Any) -> Container:
    conn = DatabaseConnection.open(DBConfig.from_dict(db_config))
    return assemble(
        settings,
        identities_repo=MySQLIdentityRepository(conn),
        enrollments_repo=MySQLEnrollmentRepository(conn),
        events_repo=MySQLRollCallEventRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        conn=conn,
    )
