"""Static role -> capability table.

Built once at import and exposed read-only. A role's effective capabilities are
the ones it lists itself plus every capability whose allowed-role set names it.
Roles missing from the table have no capabilities.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from app.domain.entities.user import ROLES


VIEW_ALL_USERS = "viewAllUsers"
BLOCK_USER = "blockUser"
UNBLOCK_USER = "unblockUser"
DELETE_USER = "deleteUser"
PROMOTE_TO_ADMIN = "promoteToAdmin"
REMOVE_ADMIN = "removeAdmin"
INVITE_USER = "inviteUser"

USER_MANAGEMENT = (
    VIEW_ALL_USERS,
    BLOCK_USER,
    UNBLOCK_USER,
    DELETE_USER,
    PROMOTE_TO_ADMIN,
    REMOVE_ADMIN,
    INVITE_USER,
)

_DOCTOR_MODULE = (
    "updateDoctor",
    "deleteDoctor",
    "getDoctor",
    "getDoctorDashboardStats",
    "getTodaysSchedule",
)

_PATIENT_MODULE = (
    "getPatients",
    "createPatient",
    "getPatient",
    "updatePatient",
    "deletePatient",
)

_APPOINTMENT_READ_WRITE = (
    "getAppointments",
    "getAppointment",
    "updateAppointment",
    "deleteAppointment",
)

_PRESCRIPTION_READ = (
    "createPrescription",
    "getPrescriptions",
    "getPrescription",
    "getPrescriptionsByPatient",
    "getPrescriptionPDF",
)

_PRESCRIPTION_WRITE = (
    "updatePrescription",
    "finalizePrescription",
    "deletePrescription",
)

_BILLING = (
    "createBill",
    "getBills",
    "getBillById",
    "updateBill",
    "deleteBill",
    "recordPayment",
    "getBillingStats",
    "getOverdueBills",
)

_MEDICAL_RECORDS = (
    "createMedicalRecord",
    "getMedicalRecord",
    "updateMedicalRecord",
    "deleteMedicalRecord",
    "getPatientHistory",
    "getDoctorRecords",
    "searchMedicalRecords",
    "addDiagnosis",
    "addMedication",
    "addLabResult",
    "markAsReviewed",
    "getMedicalRecordStats",
    "getRecentRecords",
    "getMyRecords",
    "getDashboardSummary",
    "getRecordVersionHistory",
    "exportPatientRecords",
)

_ROLE_GRANTS: dict[str, tuple[str, ...]] = {
    "user": (),
    "admin": USER_MANAGEMENT,
    "superAdmin": (
        *USER_MANAGEMENT,
        "registerDoctor",
        *_DOCTOR_MODULE,
        "getDoctors",
        "registerManager",
        "getManagersByDoctorId",
        "getManager",
        "getManagers",
        "updateManager",
        "deleteManager",
        *_PATIENT_MODULE,
        "createAppointment",
        *_APPOINTMENT_READ_WRITE,
        *_PRESCRIPTION_READ,
        *_PRESCRIPTION_WRITE,
        "getDoctorPreferences",
        "updateDoctorPreferences",
        *_MEDICAL_RECORDS,
        *_BILLING,
        "markOverdueBills",
    ),
    "doctor": (
        "registerManager",
        "getManagersByDoctorId",
        "getManager",
        "updateManager",
        "deleteManager",
        *_DOCTOR_MODULE,
        *_PATIENT_MODULE,
        *_APPOINTMENT_READ_WRITE,
        *_PRESCRIPTION_READ,
        *_PRESCRIPTION_WRITE,
        "getDoctorPreferences",
        "updateDoctorPreferences",
        *_BILLING,
    ),
    "manager": (
        "getManager",
        "updateManager",
        *_PATIENT_MODULE,
        "createAppointment",
        *_APPOINTMENT_READ_WRITE,
        *_PRESCRIPTION_READ,
        "getDoctorPreferences",
    ),
}

_CAPABILITY_GRANTS: dict[str, tuple[str, ...]] = {
    "createDryEyeTest": ("doctor", "manager"),
    "updateDryEyeTest": ("doctor", "manager"),
    "getDryEyeTest": ("doctor", "manager", "superAdmin"),
    "deleteDryEyeTest": ("doctor", "superAdmin"),
    "listDryEyeTests": ("doctor", "manager", "superAdmin"),
}


def _build_role_capabilities() -> Mapping[str, frozenset[str]]:
    table: dict[str, set[str]] = {role: set(grants) for role, grants in _ROLE_GRANTS.items()}
    for capability, roles in _CAPABILITY_GRANTS.items():
        for role in roles:
            table.setdefault(role, set()).add(capability)
    unknown = set(table) - set(ROLES)
    if unknown:
        raise ValueError(f"Role table references unknown roles: {sorted(unknown)}")
    return MappingProxyType({role: frozenset(caps) for role, caps in table.items()})


def _build_capability_roles(
    role_capabilities: Mapping[str, frozenset[str]],
) -> Mapping[str, frozenset[str]]:
    inverted: dict[str, set[str]] = {}
    for role, capabilities in role_capabilities.items():
        for capability in capabilities:
            inverted.setdefault(capability, set()).add(role)
    return MappingProxyType({cap: frozenset(roles) for cap, roles in inverted.items()})


ROLE_CAPABILITIES = _build_role_capabilities()
CAPABILITY_ROLES = _build_capability_roles(ROLE_CAPABILITIES)


def capabilities_for(role: str | None) -> frozenset[str]:
    if role is None:
        return frozenset()
    return ROLE_CAPABILITIES.get(role, frozenset())


def roles_for(capability: str) -> frozenset[str]:
    return CAPABILITY_ROLES.get(capability, frozenset())


def has_capabilities(role: str | None, required: Iterable[str]) -> bool:
    return capabilities_for(role).issuperset(required)
