"""Supabase client for the dispatch backend."""

import logging
from functools import lru_cache
from supabase import create_client, Client
from ..config import settings


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get cached Supabase client instance.

    Returns:
        Supabase Client instance if configured, None otherwise.
        Note: This does not test the connection - actual queries may fail with network errors.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logging.warning("Supabase credentials not configured (missing URL or key)")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logging.error(f"Failed to create Supabase client: {e}")
        return None


# Tables used by the backend:
#
#   external_tickets  id, technician_id, status, type, sector_id, client (jsonb),
#                     en_route, en_route_at, check_in, check_out, created_at, updated_at
#   technicians       id, user_id, name, email, sector_ids, status,
#                     route_order (jsonb), route_history (jsonb)
#   clients           id, name, phone, address (jsonb), status
#   service_contracts id, client_id, sector_ids, frequency_days, status
#   support_points    id, name, address (jsonb)
#   system_logs       user_id, event, flow_name, timestamp, details (jsonb)
