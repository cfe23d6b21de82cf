from .care_plan import build_care_plan, build_todo_list, build_workout_plan
from .gemini_client import GeminiClient, split_image_payload
from .identity import Identity, SupabaseIdentityProvider, TrustedTokenIdentityProvider, identity_provider_from_env
from .medication_info import medication_info

__all__ = [
    "GeminiClient",
    "Identity",
    "SupabaseIdentityProvider",
    "TrustedTokenIdentityProvider",
    "build_care_plan",
    "build_todo_list",
    "build_workout_plan",
    "identity_provider_from_env",
    "medication_info",
    "split_image_payload",
]
