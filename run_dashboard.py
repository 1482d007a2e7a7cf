"""
This script runs the Flask admin dashboard.
"""

from dashboard.app import run_dashboard
from fleet_catalog.app_factory import create_facade, initialize_app

if __name__ == "__main__":
    initialize_app()
    run_dashboard(create_facade())
