from __future__ import annotations

import logging
from typing import Optional

from flask import Blueprint, Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from medledger.config import LedgerConfig
from medledger.errors import InvalidArgumentError, LedgerError
from medledger.events import EventType
from medledger.identifiers import new_record_id
from medledger.ledger import MedicalRecordsLedger

logger = logging.getLogger(__name__)

ledger_bp = Blueprint("ledger", __name__)


def _ledger() -> MedicalRecordsLedger:
    return current_app.extensions["medledger"]


def _body():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidArgumentError("Request body must be a JSON object.")
    return body


def _field(body, name, required=True, default=None):
    value = body.get(name, default)
    if required and value in (None, ""):
        raise InvalidArgumentError(f"Missing field: {name}", field=name)
    return value


def _arg(name, required=True):
    value = request.args.get(name)
    if required and not value:
        raise InvalidArgumentError(f"Missing query argument: {name}", field=name)
    return value


def _index(raw):
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidArgumentError("Record index must be an integer.", index=str(raw))


def _tx(status, receipt, **extra):
    out = {"status": status, "tx": receipt.tx_hash, "block": receipt.block_number}
    out.update(extra)
    return jsonify(out)


@ledger_bp.route("/health", methods=["GET"])
def health():
    ledger = _ledger()
    return jsonify({
        "status": "ok",
        "owner": ledger.owner,
        "block": ledger.block_number,
        "totalRecords": ledger.get_total_records(),
    })


@ledger_bp.route("/owner", methods=["GET"])
def owner():
    ledger = _ledger()
    return jsonify({"owner": ledger.owner, "registry": ledger.registry_address})


# ---- authorization ----

@ledger_bp.route("/authorize", methods=["POST"])
def authorize():
    body = _body()
    receipt = _ledger().authorize(_field(body, "from"), _field(body, "patient"))
    return _tx("patient authorized", receipt)


@ledger_bp.route("/deauthorize", methods=["POST"])
def deauthorize():
    body = _body()
    receipt = _ledger().deauthorize(_field(body, "from"), _field(body, "patient"))
    return _tx("patient deauthorized", receipt)


@ledger_bp.route("/transfer-ownership", methods=["POST"])
def transfer_ownership():
    body = _body()
    receipt = _ledger().transfer_ownership(_field(body, "from"), _field(body, "new_owner"))
    return _tx("ownership transferred", receipt)


@ledger_bp.route("/link-registry", methods=["POST"])
def link_registry():
    body = _body()
    receipt = _ledger().link_registry(_field(body, "from"), _field(body, "registry"))
    return _tx("registry linked", receipt)


@ledger_bp.route("/is-authorized", methods=["GET"])
def is_authorized():
    return jsonify({"authorized": _ledger().is_authorized(_arg("address"))})


@ledger_bp.route("/am-i-authorized", methods=["GET"])
def am_i_authorized():
    return jsonify({"authorized": _ledger().am_i_authorized(_arg("caller"))})


# ---- records ----

@ledger_bp.route("/records", methods=["POST"])
def add_record():
    body = _body()
    # mint REC-<ms>-<hex> when the caller leaves the id to the server
    record_id = _field(body, "record_id", required=False) or new_record_id()
    receipt = _ledger().add_record(
        _field(body, "from"),
        record_id,
        _field(body, "data_hash"),
        _field(body, "record_type", required=False, default=""),
        _field(body, "metadata", required=False, default=""),
    )
    index = receipt.events[0]["args"]["index"]
    return _tx("record added", receipt, record_id=record_id, index=index), 201


@ledger_bp.route("/records/<index>", methods=["PUT"])
def update_record(index):
    body = _body()
    receipt = _ledger().update_record(
        _field(body, "from"),
        _index(index),
        _field(body, "data_hash"),
        _field(body, "metadata", required=False, default=""),
    )
    return _tx("record updated", receipt)


@ledger_bp.route("/records/<index>", methods=["DELETE"])
def deactivate_record(index):
    body = _body()
    receipt = _ledger().deactivate_record(_field(body, "from"), _index(index))
    return _tx("record deactivated", receipt)


@ledger_bp.route("/records/total", methods=["GET"])
def total_records():
    return jsonify({"totalRecords": _ledger().get_total_records()})


@ledger_bp.route("/records/<patient>/count", methods=["GET"])
def record_count(patient):
    return jsonify({"patient": patient, "count": _ledger().get_record_count(patient)})


@ledger_bp.route("/records/<patient>/ids", methods=["GET"])
def record_ids(patient):
    ids = _ledger().get_record_ids(_arg("caller"), patient)
    return jsonify({"patient": patient, "recordIds": ids})


@ledger_bp.route("/records/<patient>/stats", methods=["GET"])
def record_stats(patient):
    stats = _ledger().get_record_stats(_arg("caller"), patient)
    return jsonify({"patient": patient, "stats": stats})


@ledger_bp.route("/records/<patient>/<index>", methods=["GET"])
def get_record(patient, index):
    record = _ledger().get_record(_arg("caller"), patient, _index(index))
    return jsonify(record.model_dump())


# ---- events ----

@ledger_bp.route("/events", methods=["GET"])
def events():
    event_type = _arg("type", required=False)
    try:
        event_type = EventType(event_type) if event_type else None
    except ValueError:
        raise InvalidArgumentError("Unknown event type.", type=event_type)
    events = _ledger().get_events(
        event_type=event_type,
        address=_arg("address", required=False),
        from_block=_index(request.args.get("from_block", 0)),
    )
    return jsonify([e.to_dict() for e in events])


def _ledger_error(e: LedgerError):
    return jsonify({"error": e.to_dict()}), e.http_status


def _http_error(e: HTTPException):
    return jsonify({"error": {"code": "http_error", "message": e.description, "context": {}}}), e.code


def create_app(config: LedgerConfig, ledger: Optional[MedicalRecordsLedger] = None) -> Flask:
    app = Flask(__name__)
    if ledger is None:
        ledger = MedicalRecordsLedger(
            config.owner_address,
            registry_address=config.registry_address,
            keep_events=config.keep_events,
        )
    app.extensions["medledger"] = ledger
    app.config["DEBUG"] = config.debug
    app.register_blueprint(ledger_bp)
    app.register_error_handler(LedgerError, _ledger_error)
    app.register_error_handler(HTTPException, _http_error)
    logger.info("Ledger ready, owner %s", ledger.owner)
    return app
