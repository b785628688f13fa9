"""Session roles, resolved once when a user signs in."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from placement.errors import NotFoundError
from placement.models import RepProfile, StudentProfile
from placement.stores import AccountStore


@dataclass(frozen=True)
class StudentRole:
    profile: StudentProfile

    @property
    def user_id(self) -> str:
        return self.profile.id


@dataclass(frozen=True)
class RepresentativeRole:
    rep: RepProfile

    @property
    def user_id(self) -> str:
        return self.rep.id


@dataclass(frozen=True)
class StaffRole:
    user_id: str


Role = Union[StudentRole, RepresentativeRole, StaffRole]


def resolve_role(accounts: AccountStore, user_id: str) -> Role:
    student = accounts.find_student(user_id)
    if student is not None:
        return StudentRole(student)
    rep = accounts.find_rep(user_id)
    if rep is not None:
        return RepresentativeRole(rep)
    if accounts.is_staff(user_id):
        return StaffRole(user_id)
    raise NotFoundError(f"no account for {user_id}")


def role_label(role: Role) -> str:
    match role:
        case StudentRole(profile=p):
            return f"Student · Y{p.year} {p.major}"
        case RepresentativeRole(rep=r):
            return f"Representative · {r.company_name}"
        case StaffRole():
            return "Career centre staff"
    raise TypeError(f"unknown role {role!r}")
