"""
Engine error taxonomy.

Only conditions that stop a request are exceptions. Unresolved steps and
skipped weekly windows are reportable states carried in the plan itself.
"""

from typing import Optional


class PlanEngineError(Exception):
    """Base class for plan engine failures"""

    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NoRuleMatched(PlanEngineError):
    """No active rule (including skin-type fallbacks) holds for the profile"""

    def __init__(self, user_id: str, skin_type: Optional[str]):
        super().__init__(
            f"No recommendation rule matches the profile of user {user_id} "
            f"(skin type: {skin_type or 'unknown'}). Add or activate a catch-all "
            f"rule for this skin type, or retake the questionnaire."
        )
        self.user_id = user_id
        self.skin_type = skin_type


class StorageReplaceFailure(PlanEngineError):
    """Atomic delete-then-create of a plan document failed; nothing was written"""

    retryable = True

    def __init__(self, user_id: str, profile_version: int):
        super().__init__(
            f"Could not store the plan for user {user_id} "
            f"(profile version {profile_version}). Please retry."
        )
        self.user_id = user_id
        self.profile_version = profile_version


class ProfileNotFound(PlanEngineError):
    def __init__(self, user_id: str, version: Optional[int] = None):
        detail = f" version {version}" if version is not None else ""
        super().__init__(f"No skin profile{detail} found for user {user_id}")
        self.user_id = user_id
        self.version = version


class PlanNotFound(PlanEngineError):
    def __init__(self, user_id: str):
        super().__init__(f"No plan found for user {user_id}; generate one first")
        self.user_id = user_id
