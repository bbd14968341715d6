# routes/rfid_cards.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from auth_guard import require_role
from db import db
from errors import ApiError, error_response
from models.rfid_card import RFIDCard
from models.student import Student
from utils.clock import utcnow
from utils.ids import parse_id

rfid_cards_bp = Blueprint("rfid_cards", __name__, url_prefix="/api/rfid-cards")


@rfid_cards_bp.route("/assign", methods=["POST"])
@require_role("admin")
def assign_rfid_card():
    """
    Body: { rfid_tag, student_id }
    - active card with the same tag → 409
    - inactive card with the same tag is re-issued to the student (200)
    """
    data = request.get_json(silent=True) or {}
    tag = data.get("rfid_tag")
    if not isinstance(tag, str):
        return error_response(ApiError(400, "INVALID_RFID_TAG", "rfid_tag is required and must be a string."))
    tag = tag.strip()
    if not tag:
        return error_response(ApiError(400, "INVALID_RFID_TAG", "rfid_tag cannot be empty."))

    student_id = parse_id(data.get("student_id"))
    if student_id is None:
        return error_response(ApiError(400, "INVALID_STUDENT_ID", "student_id is required and must be a valid number."))
    if db.session.get(Student, student_id) is None:
        return error_response(ApiError(404, "STUDENT_NOT_FOUND", "Student not found."))

    existing = RFIDCard.query.filter_by(rfid_tag=tag).first()
    if existing:
        if existing.active:
            return error_response(
                ApiError(409, "RFID_TAG_IN_USE", "This RFID tag is already assigned to an active card.")
            )
        existing.student_id = student_id
        existing.active = True
        existing.issued_at = utcnow()
        db.session.commit()
        current_app.logger.info("[rfid] reissued card=%s tag=%s student=%s", existing.id, tag, student_id)
        return jsonify(success=True, data=existing.to_dict()), 200

    card = RFIDCard(rfid_tag=tag, student_id=student_id, active=True)
    db.session.add(card)
    db.session.commit()
    current_app.logger.info("[rfid] issued card=%s tag=%s student=%s", card.id, tag, student_id)
    return jsonify(success=True, data=card.to_dict()), 201


@rfid_cards_bp.route("/student/<id:student_id>", methods=["GET"])
@require_role("admin", "parent")
def get_active_card(student_id: int):
    student = db.session.get(Student, student_id)
    if student is None:
        return error_response(ApiError(404, "STUDENT_NOT_FOUND", "Student not found."))
    if g.user.is_parent and student.parent_id != g.user.id:
        return error_response(ApiError(403, "FORBIDDEN", "You can only view RFID cards for your own students."))

    card = RFIDCard.query.filter_by(student_id=student_id, active=True).first()
    return jsonify(success=True, data=card.to_dict() if card else None), 200


@rfid_cards_bp.route("/<id:card_id>/deactivate", methods=["PUT"])
@require_role("admin", "parent")
def deactivate_card(card_id: int):
    """Lost/stolen card."""
    card = db.session.get(RFIDCard, card_id)
    if card is None:
        return error_response(ApiError(404, "RFID_CARD_NOT_FOUND", "RFID card not found."))
    if g.user.is_parent and card.student.parent_id != g.user.id:
        return error_response(
            ApiError(403, "FORBIDDEN", "You can only deactivate RFID cards for your own students.")
        )
    if not card.active:
        return error_response(ApiError(400, "CARD_ALREADY_INACTIVE", "This card is already deactivated."))

    card.active = False
    db.session.commit()
    current_app.logger.info("[rfid] deactivated card=%s by uid=%s", card.id, g.user.id)
    return jsonify(success=True, data=card.to_dict()), 200
