"""
Admin API
=========

Account moderation, role management (head admin only), the 24-hour
activity trail, forgot-password review and system alerts.
"""

from __future__ import annotations

from flask import Blueprint

from app.blueprints.api._common import client_ip, get_container, get_json, success
from app.security.auth import admin_only, current_identity, head_admin_only
from app.utils.http import safe_route

admin_api = Blueprint("admin_api", __name__)


def _admin():
    return get_container().admin_service


# ==================== USERS ====================


@admin_api.get("/users")
@safe_route("Failed to list users")
@admin_only
def list_users():
    users = _admin().list_users(current_identity())
    return success({"count": len(users), "users": users})


@admin_api.get("/users/online")
@safe_route("Failed to list online users")
@admin_only
def online_users():
    users = _admin().online_users(current_identity())
    return success({"count": len(users), "users": users})


@admin_api.delete("/users/<int:user_id>")
@safe_route("Failed to delete user")
@admin_only
def delete_user(user_id: int):
    target = _admin().delete_user(current_identity(), user_id, ip_address=client_ip())
    return success(None, message=f"User {target.username} deleted successfully")


@admin_api.put("/users/<int:user_id>/ban")
@safe_route("Failed to update ban status")
@admin_only
def ban_user(user_id: int):
    user = _admin().set_banned(current_identity(), user_id, get_json(), ip_address=client_ip())
    verb = "banned" if user.banned else "unbanned"
    return success(user.to_safe_dict(), message=f"User {verb} successfully")


@admin_api.put("/users/<int:user_id>/restrict")
@safe_route("Failed to update restriction")
@admin_only
def restrict_user(user_id: int):
    user = _admin().set_restricted(current_identity(), user_id, get_json())
    verb = "restricted" if user.restricted else "unrestricted"
    return success(user.to_safe_dict(), message=f"User {verb} successfully")


# ==================== ROLES (head admin) ====================


@admin_api.put("/users/<int:user_id>/promote")
@safe_route("Failed to promote user")
@head_admin_only
def promote_user(user_id: int):
    user = _admin().promote(current_identity(), user_id, ip_address=client_ip())
    return success(user.to_safe_dict(), message=f"{user.username} promoted to admin")


@admin_api.put("/users/<int:user_id>/demote")
@safe_route("Failed to demote user")
@head_admin_only
def demote_user(user_id: int):
    user = _admin().demote(current_identity(), user_id, ip_address=client_ip())
    return success(user.to_safe_dict(), message=f"{user.username} demoted to regular user")


# ==================== ACTIVITY ====================


@admin_api.get("/activity/24h")
@safe_route("Failed to load activity log")
@admin_only
def activity_24h():
    records = _admin().activity_last_24_hours(current_identity())
    return success({"count": len(records), "activity": records})


# ==================== FORGOT PASSWORD ====================


@admin_api.get("/forgot-password/pending")
@safe_route("Failed to load password reset requests")
@admin_only
def pending_password_requests():
    requests_ = _admin().pending_password_requests(current_identity())
    return success({"count": len(requests_), "requests": requests_})


@admin_api.post("/forgot-password/<int:request_id>/approve")
@safe_route("Failed to approve password reset")
@admin_only
def approve_password_request(request_id: int):
    _admin().approve_password_request(current_identity(), request_id, get_json(), ip_address=client_ip())
    return success(None, message="Password reset approved and new password set")


@admin_api.post("/forgot-password/<int:request_id>/reject")
@safe_route("Failed to reject password reset")
@admin_only
def reject_password_request(request_id: int):
    _admin().reject_password_request(current_identity(), request_id, ip_address=client_ip())
    return success(None, message="Password reset request rejected")


# ==================== ALERTS ====================


@admin_api.get("/alerts")
@safe_route("Failed to load alerts")
@admin_only
def list_alerts():
    alerts = _admin().list_alerts(current_identity())
    return success({"count": len(alerts), "alerts": alerts})


@admin_api.put("/alerts/<int:alert_id>/acknowledge")
@safe_route("Failed to acknowledge alert")
@admin_only
def acknowledge_alert(alert_id: int):
    _admin().acknowledge_alert(current_identity(), alert_id)
    return success(None, message="Alert acknowledged")
