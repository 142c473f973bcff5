"""
API Dependencies
Shared dependencies for authentication, store access, services and authorization
"""
import os
from typing import Optional
from fastapi import Depends, HTTPException, status, Header
from supabase import create_client, Client
from dotenv import load_dotenv

from leadpool.core.config import ConfigManager, get_config_manager
from leadpool.domain.interfaces.audit_store import AuditStore
from leadpool.domain.interfaces.collection_store import CollectionStore
from leadpool.domain.interfaces.inventory_store import InventoryStore
from leadpool.domain.interfaces.lead_store import LeadStore
from leadpool.domain.models.actor import Actor, Role
from leadpool.domain.models.assignment import AssignmentPolicy
from leadpool.domain.services.approval_service import ApprovalService
from leadpool.domain.services.assignment_service import LeadAssignmentService
from leadpool.domain.services.audit_log import AuditLogService
from leadpool.domain.services.collection_service import CollectionService, DEFAULT_RECALL_GAP_MINUTES
from leadpool.domain.services.stats_service import LeadStatsAggregator, DEFAULT_STATS_TIMEZONE
from leadpool.domain.services.update_pipeline import LeadUpdateService
from leadpool.infrastructure.connectors.sms import get_sms_provider
from leadpool.infrastructure.storage.database import get_session_factory
from leadpool.infrastructure.storage.sql_stores import (
    SqlAuditStore,
    SqlCollectionStore,
    SqlInventoryStore,
    SqlLeadStore,
)
from leadpool.infrastructure.storage.supabase_audit_store import SupabaseAuditStore
from leadpool.infrastructure.storage.supabase_collection_store import SupabaseCollectionStore
from leadpool.infrastructure.storage.supabase_inventory_store import SupabaseInventoryStore
from leadpool.infrastructure.storage.supabase_lead_store import SupabaseLeadStore
from leadpool.services.inventory_service import InventoryService
from leadpool.services.lead_import_service import LeadImportService
from leadpool.services.sms_service import SMSService

load_dotenv()

SQL_BACKEND = "sql"


def get_supabase() -> Client:
    """
    Get Supabase client with validation.

    Raises:
        RuntimeError: If Supabase URL or SERVICE_KEY is not configured
    """
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_KEY")

    if not url:
        raise RuntimeError(
            "SUPABASE_URL is not configured. "
            "Set SUPABASE_URL environment variable."
        )
    if not key:
        raise RuntimeError(
            "SUPABASE_SERVICE_KEY is not configured. "
            "Set SUPABASE_SERVICE_KEY environment variable."
        )

    return create_client(url, key)


def get_config() -> ConfigManager:
    return get_config_manager()


async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    supabase: Client = Depends(get_supabase)
) -> Actor:
    """
    Dependency to get the current authenticated user from a Supabase JWT.

    Raises:
        HTTPException: If token is invalid or user not found
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Extract token from "Bearer <token>"
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Use: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = parts[1]

    try:
        user_response = supabase.auth.get_user(token)

        if not user_response or not user_response.user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
                headers={"WWW-Authenticate": "Bearer"},
            )

        auth_user = user_response.user

        # Role lives in our user_profiles table
        profile_response = supabase.table("user_profiles").select(
            "name, role"
        ).eq("id", auth_user.id).limit(1).execute()

        profile = profile_response.data[0] if profile_response.data else {}
        role = Role.ADMIN.value if (profile.get("role") or "").lower() == Role.ADMIN.value else Role.AGENT.value

        return Actor(
            id=str(auth_user.id),
            email=auth_user.email,
            name=profile.get("name"),
            role=role,
        )

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Token validation failed: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def require_admin(
    current_user: Actor = Depends(get_current_user)
) -> Actor:
    """
    Dependency to require admin role.

    Raises:
        HTTPException: If user is not an admin
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


# =============================================================================
# Stores
# =============================================================================

def _use_sql(config: ConfigManager) -> bool:
    return (config.get("storage.backend", "supabase") or "").lower() == SQL_BACKEND


def get_lead_store(config: ConfigManager = Depends(get_config)) -> LeadStore:
    if _use_sql(config):
        return SqlLeadStore(get_session_factory())
    return SupabaseLeadStore(get_supabase())


def get_audit_store(config: ConfigManager = Depends(get_config)) -> AuditStore:
    if _use_sql(config):
        return SqlAuditStore(get_session_factory())
    return SupabaseAuditStore(get_supabase())


def get_inventory_store(config: ConfigManager = Depends(get_config)) -> InventoryStore:
    if _use_sql(config):
        return SqlInventoryStore(get_session_factory())
    return SupabaseInventoryStore(get_supabase())


def get_collection_store(config: ConfigManager = Depends(get_config)) -> CollectionStore:
    if _use_sql(config):
        return SqlCollectionStore(get_session_factory())
    return SupabaseCollectionStore(get_supabase())


# =============================================================================
# Services
# =============================================================================

def get_assignment_policy(config: ConfigManager = Depends(get_config)) -> AssignmentPolicy:
    return AssignmentPolicy.from_config(config)


def get_audit_log_service(store: AuditStore = Depends(get_audit_store)) -> AuditLogService:
    return AuditLogService(store)


def get_assignment_service(
    lead_store: LeadStore = Depends(get_lead_store),
    audit_log: AuditLogService = Depends(get_audit_log_service),
    policy: AssignmentPolicy = Depends(get_assignment_policy)
) -> LeadAssignmentService:
    return LeadAssignmentService(lead_store, audit_log, policy)


def get_stats_aggregator(
    lead_store: LeadStore = Depends(get_lead_store),
    policy: AssignmentPolicy = Depends(get_assignment_policy),
    config: ConfigManager = Depends(get_config)
) -> LeadStatsAggregator:
    return LeadStatsAggregator(
        lead_store,
        policy,
        timezone_name=config.get("stats.timezone", DEFAULT_STATS_TIMEZONE),
    )


def get_update_service(
    lead_store: LeadStore = Depends(get_lead_store),
    audit_log: AuditLogService = Depends(get_audit_log_service)
) -> LeadUpdateService:
    return LeadUpdateService(lead_store, audit_log)


def get_approval_service(
    lead_store: LeadStore = Depends(get_lead_store),
    audit_log: AuditLogService = Depends(get_audit_log_service)
) -> ApprovalService:
    return ApprovalService(lead_store, audit_log)


def get_inventory_service(
    inventory_store: InventoryStore = Depends(get_inventory_store),
    lead_store: LeadStore = Depends(get_lead_store),
    audit_log: AuditLogService = Depends(get_audit_log_service)
) -> InventoryService:
    return InventoryService(inventory_store, lead_store, audit_log)


def get_import_service(
    lead_store: LeadStore = Depends(get_lead_store),
    audit_log: AuditLogService = Depends(get_audit_log_service)
) -> LeadImportService:
    return LeadImportService(lead_store, audit_log)


def get_sms_service(
    lead_store: LeadStore = Depends(get_lead_store),
    audit_log: AuditLogService = Depends(get_audit_log_service),
    config: ConfigManager = Depends(get_config)
) -> SMSService:
    provider = get_sms_provider(
        config.get("providers.sms.active", "netgsm"),
        simulate_when_unconfigured=bool(config.get("providers.sms.simulate_when_unconfigured", False)),
    )
    return SMSService(lead_store, audit_log, provider)


def get_collection_service(
    collection_store: CollectionStore = Depends(get_collection_store),
    lead_store: LeadStore = Depends(get_lead_store),
    config: ConfigManager = Depends(get_config)
) -> CollectionService:
    return CollectionService(
        collection_store,
        lead_store,
        recall_gap_minutes=int(config.get("collection.recall_gap_minutes", DEFAULT_RECALL_GAP_MINUTES)),
        timezone_name=config.get("stats.timezone", DEFAULT_STATS_TIMEZONE),
    )
