"""
Account authentication endpoints.

Bearer credentials are returned by register and login and must be sent as
``Authorization: Bearer <token>`` on every other request.
"""

from __future__ import annotations

from flask import Blueprint

from app.blueprints.api._common import client_ip, get_container, get_json, success
from app.security.auth import allow_write, current_identity, protect
from app.utils.http import safe_route

auth_api = Blueprint("auth_api", __name__)


@auth_api.post("/register")
@safe_route("Failed to register user")
def register():
    session = get_container().auth_manager.register(get_json(), ip_address=client_ip())
    return success(session.to_dict(), 201, message="User registered successfully")


@auth_api.post("/login")
@safe_route("Failed to log in")
def login():
    session = get_container().auth_manager.login(get_json(), ip_address=client_ip())
    return success(session.to_dict(), message="Login successful")


@auth_api.post("/logout")
@safe_route("Failed to log out")
@protect
def logout():
    get_container().auth_manager.logout(current_identity(), ip_address=client_ip())
    return success(None, message="Logged out successfully")


@auth_api.get("/me")
@safe_route("Failed to load user")
@protect
def me():
    return success(get_container().auth_manager.me(current_identity()))


@auth_api.post("/forgot-password")
@safe_route("Failed to submit password reset request")
def forgot_password():
    message = get_container().auth_manager.forgot_password(get_json())
    return success(None, message=message)


@auth_api.put("/change-password")
@safe_route("Failed to change password")
@allow_write
def change_password():
    get_container().auth_manager.change_password(current_identity(), get_json())
    return success(None, message="Password changed successfully")
