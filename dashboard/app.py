"""
This module contains the Flask admin dashboard for registry imports.
"""

import logging

from flask import Flask, abort, flash, redirect, render_template, request, url_for

from registry_import.config import DASHBOARD_HOST, DASHBOARD_PORT, DASHBOARD_SECRET_KEY
from registry_import.exceptions import (
    DecodeError,
    ImportInProgressError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from registry_import.waste_classifier import WASTE_OPTIONS

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["SECRET_KEY"] = DASHBOARD_SECRET_KEY


def get_facade():
    """Returns the configured facade, creating the default one on first use."""
    facade = app.config.get("FACADE")
    if facade is None:
        from fleet_catalog.app_factory import create_facade, initialize_app

        initialize_app()
        facade = app.config["FACADE"] = create_facade()
    return facade


def _uploaded_bytes(name: str):
    upload = request.files.get(name)
    if upload is None or not upload.filename:
        return None
    return upload.read()


@app.route("/")
def index():
    """Renders the main dashboard page with catalog KPIs, the correction queue and logs."""
    data = get_facade().get_dashboard_data()
    return render_template("index.html", data=data)


@app.route("/import", methods=["POST"])
def import_registries():
    """Imports the uploaded registry files and renders the summary."""
    facade = get_facade()
    try:
        summary = facade.import_registries(
            commercial_data=_uploaded_bytes("commercial"),
            residential_data=_uploaded_bytes("residential"),
        )
    except (ValueError, DecodeError, ImportInProgressError, StoreUnavailableError) as e:
        flash(str(e), "error")
        return redirect(url_for("index"))

    return render_template("summary.html", summary=summary)


@app.route("/invalid/<row_id>", methods=["GET", "POST"])
def fix_invalid_row(row_id):
    """Shows and submits the 'edit and add' form for an invalid row."""
    facade = get_facade()
    try:
        row = facade.get_invalid_row(row_id)
    except NotFoundError:
        abort(404)

    error = None
    form = {
        "street": row.street,
        "number": row.number,
        "city": row.city,
        "postal_code": row.postal_code or "",
        "notes": row.notes,
        "waste_types": list(row.waste_types) or ["mixed"],
        "active": True,
    }

    if request.method == "POST":
        form = {
            "street": request.form.get("street", ""),
            "number": request.form.get("number", ""),
            "city": request.form.get("city", ""),
            "postal_code": request.form.get("postal_code", ""),
            "notes": request.form.get("notes", ""),
            "waste_types": request.form.getlist("waste_types"),
            "active": "active" in request.form,
        }
        try:
            address = facade.fix_invalid_row(row_id, form)
        except NotFoundError:
            abort(404)
        except (ValidationError, StoreUnavailableError) as e:
            error = str(e)
        else:
            flash(f"Added {address.street} {address.number}, {address.city}.", "success")
            return redirect(url_for("index"))

    return (
        render_template(
            "correction.html",
            row=row,
            form=form,
            error=error,
            suggestions=facade.suggest_matches(row_id),
            waste_options=WASTE_OPTIONS,
        ),
        400 if error else 200,
    )


@app.route("/addresses/clear", methods=["POST"])
def clear_addresses():
    removed = get_facade().clear_addresses()
    flash(f"Removed {removed} addresses.", "success")
    return redirect(url_for("index"))


def run_dashboard(facade=None):
    """Runs the dashboard with the given facade."""
    if facade is not None:
        app.config["FACADE"] = facade
    # Running on 0.0.0.0 makes it accessible from outside the container
    app.run(host=DASHBOARD_HOST, port=DASHBOARD_PORT)


if __name__ == "__main__":
    run_dashboard()
