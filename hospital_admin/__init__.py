"""Embedded data core for a small hospital administration application.

Entry points:

* :class:`hospital_admin.app.HospitalApp` wires backend, store, rules,
  query facade and the per-domain services for one session.
* ``python -m hospital_admin`` offers maintenance commands (stats,
  export, import, seed, clear).
"""

__version__ = "1.0.0"
