"""Admin credential setup and verification.

The admin password is a second factor layered on top of the ordinary member
login. Setup (re)writes salt + hash and enables the credential; verification
walks a fixed sequence of checks, each mapped to one :class:`AdminAuthError`:

1. profile exists            -> ``profile_not_found``
2. role is admin             -> ``not_authorized``
3. account is active         -> ``account_inactive``
4. credential enabled        -> ``not_configured``
5. hash and salt both set    -> ``not_configured``
6. digest matches            -> ``invalid_password``

Neither operation raises; store errors become ``persistence_failed``.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import ValidationError

from pacportal.middleware.monitoring import record_admin_verification
from pacportal.schemas.auth import PASSWORD_MISMATCH, AdminAuthError, AdminPasswordForm, OperationResult, SetupStatus
from pacportal.services import audit
from pacportal.services.credentials import CredentialStore, PersistenceError
from pacportal.utils.hashing import digests_match, generate_salt, hash_password
from pacportal.utils.logger import logger


def _form_errors(exc: ValidationError) -> Dict[str, List[str]]:
    """Flatten pydantic errors into ``{field: [messages]}``"""
    details: Dict[str, List[str]] = {}
    for err in exc.errors():
        field = str(err["loc"][0]) if err["loc"] else "form"
        message = err["msg"].removeprefix("Value error, ")
        details.setdefault(field, []).append(message)
    return details


def setup_admin_credential(
    store: CredentialStore,
    identity_id: str,
    password: str,
    confirm_password: str,
    now: Optional[datetime] = None,
) -> OperationResult:
    """Create or rotate the admin password of ``identity_id``.

    Every call draws a new salt, so running it again is always a full rotation.
    """
    try:
        AdminPasswordForm(admin_password=password, confirm_password=confirm_password)
    except ValidationError as exc:
        details = _form_errors(exc)
        # the match check is skipped when admin_password itself failed
        if password != confirm_password:
            details.setdefault("confirm_password", [PASSWORD_MISMATCH])
        return OperationResult.fail(AdminAuthError.VALIDATION_FAILED, details=details)

    now = now or datetime.utcnow()

    try:
        profile = store.get(identity_id)
        if profile is None:
            logger.warning("Admin setup for unknown profile", extra={"user_id": identity_id, "action": "admin_setup"})
            return OperationResult.fail(AdminAuthError.IDENTITY_NOT_FOUND)
        if not profile.is_admin:
            logger.warning("Admin setup for non-admin profile", extra={"user_id": identity_id, "action": "admin_setup"})
            return OperationResult.fail(AdminAuthError.NOT_AN_ADMIN_ROLE)

        salt = generate_salt()
        store.update(
            identity_id,
            admin_secret_hash=hash_password(password, salt),
            admin_secret_salt=salt,
            admin_2fa_enabled=True,
            admin_last_auth=now,
            updated_at=now,
        )
    except PersistenceError:
        logger.error("Admin setup failed", extra={"user_id": identity_id, "action": "admin_setup"}, exc_info=True)
        return OperationResult.fail(AdminAuthError.PERSISTENCE_FAILED)

    audit.record_activity(
        store.db,
        user_id=identity_id,
        action_type=audit.ADMIN_PASSWORD_SETUP,
        description="Admin password configured",
        resource_type="admin_security",
    )
    logger.info("Admin password configured", extra={"user_id": identity_id, "action": "admin_setup"})
    return OperationResult.ok("Admin password configured successfully")


def verify_admin_credential(
    store: CredentialStore,
    identity_id: str,
    submitted_password: str,
    email: Optional[str] = None,
    now: Optional[datetime] = None,
) -> OperationResult:
    """Check ``submitted_password`` against the stored admin credential.

    When ``email`` is given the profile must match both id and email.
    """
    result = _verify(store, identity_id, submitted_password, email)
    record_admin_verification(result.code.value if result.code else "verified")
    if not result.success:
        logger.warning(
            f"Admin verification failed: {result.code.value}",
            extra={"user_id": identity_id, "action": "admin_verify", "outcome": result.code.value},
        )
        return result

    now = now or datetime.utcnow()
    try:
        store.update(identity_id, admin_last_auth=now)
    except PersistenceError:
        # advisory timestamp only
        logger.warning("Could not update admin_last_auth", extra={"user_id": identity_id})

    audit.record_activity(
        store.db,
        user_id=identity_id,
        action_type=audit.ADMIN_DASHBOARD_ACCESS,
        description="Admin dashboard access",
        resource_type="admin_panel",
    )
    logger.info("Admin verification succeeded", extra={"user_id": identity_id, "action": "admin_verify"})
    return result


def _verify(store: CredentialStore, identity_id: str, submitted_password: str, email: Optional[str]) -> OperationResult:
    try:
        if email is None:
            profile = store.get(identity_id)
        else:
            profile = store.get_by_id_and_email(identity_id, email)
    except PersistenceError:
        logger.error("Profile lookup failed during verification", extra={"user_id": identity_id}, exc_info=True)
        return OperationResult.fail(AdminAuthError.PERSISTENCE_FAILED)

    if profile is None:
        return OperationResult.fail(AdminAuthError.PROFILE_NOT_FOUND)
    if not profile.is_admin:
        return OperationResult.fail(AdminAuthError.NOT_AUTHORIZED)
    if not profile.active:
        return OperationResult.fail(AdminAuthError.ACCOUNT_INACTIVE)
    if not profile.admin_2fa_enabled:
        return OperationResult.fail(AdminAuthError.NOT_CONFIGURED)
    # enabled but half-written state fails closed
    if not profile.admin_secret_hash or not profile.admin_secret_salt:
        return OperationResult.fail(AdminAuthError.NOT_CONFIGURED)

    computed = hash_password(submitted_password, profile.admin_secret_salt)
    if not digests_match(computed, profile.admin_secret_hash):
        return OperationResult.fail(AdminAuthError.INVALID_PASSWORD)

    return OperationResult.ok("Admin authentication succeeded")


def check_admin_password_setup(store: CredentialStore, identity_id: str) -> SetupStatus:
    """Tell whether an admin still has to run the setup flow"""
    try:
        profile = store.get(identity_id)
    except PersistenceError:
        return SetupStatus(success=False, error="Could not check admin setup", code=AdminAuthError.PERSISTENCE_FAILED)

    if profile is None:
        return SetupStatus(success=False, error="Admin profile not found", code=AdminAuthError.PROFILE_NOT_FOUND)

    return SetupStatus(success=True, needs_setup=profile.is_admin and not profile.has_admin_credential)
