from __future__ import annotations

import logging

from flask import Flask, jsonify, request, session

from ..common.web import error_response, role_required
from ..core.enums import Role
from ..core.exceptions import DomainError, ValidationError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    admin_required = role_required(Role.GYM_ADMIN)

    @app.route("/api/login", methods=["POST"], endpoint="api_login")
    def api_login():
        data = request.get_json(silent=True) or {}
        try:
            member = container.member_auth_service.authenticate(data.get("username", ""), data.get("password", ""))
        except DomainError as e:
            return error_response(e)

        session.clear()
        session["role"] = Role.MEMBER.value
        session["member_id"] = member.member_id
        session["name"] = member.name
        session["gym_id"] = member.gym_id
        return jsonify({"success": True, "member_id": member.member_id, "name": member.name}), 200

    @app.route("/api/admin/login", methods=["POST"], endpoint="api_admin_login")
    def api_admin_login():
        data = request.get_json(silent=True) or {}
        try:
            admin = container.gym_admin_auth_service.authenticate(data.get("username", ""), data.get("password", ""))
        except DomainError as e:
            return error_response(e)

        session.clear()
        session["role"] = Role.GYM_ADMIN.value
        session["gym_id"] = admin.gym_id
        session["name"] = admin.gym_name
        return jsonify({"success": True, "gym_id": admin.gym_id, "gym_name": admin.gym_name}), 200

    @app.route("/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"success": True}), 200

    @app.route("/api/members", methods=["POST"], endpoint="api_create_member")
    @admin_required
    def api_create_member():
        """Register a member at the admin's gym and send them their login."""
        data = request.get_json(silent=True) or {}
        try:
            plan_id = data.get("membership_plan_id")
            if plan_id in (None, ""):
                plan_id = None
            else:
                try:
                    plan_id = int(plan_id)
                except (TypeError, ValueError) as exc:
                    raise ValidationError("Membership plan id must be a number") from exc

            result = container.registration_service.register(
                gym_id=int(session["gym_id"]),
                name=data.get("name", ""),
                email=data.get("email", ""),
                phone=data.get("phone", ""),
                username=data.get("username", ""),
                password=data.get("password", ""),
                plan_id=plan_id,
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            logger.exception("member registration failed")
            return jsonify({"success": False, "code": "internal_error", "message": "System error while registering member"}), 500

        member = result.member
        return (
            jsonify(
                {
                    "success": True,
                    "member": {
                        "member_id": member.member_id,
                        "name": member.name,
                        "username": member.username,
                        "barcode": member.barcode,
                        "membership_end_date": member.membership_end_date.isoformat()
                        if member.membership_end_date
                        else None,
                    },
                    "notifications": {
                        "sent": result.notification.sent,
                        "failed": result.notification.failed,
                        "skipped": result.notification.skipped,
                    },
                }
            ),
            201,
        )
