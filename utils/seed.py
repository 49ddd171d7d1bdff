from sqlalchemy import inspect

from models import db
from models.user import Role

DEFAULT_ROLES = ["STUDENT", "STAFF", "ADMIN"]

def seed_roles():
    # Nothing to seed before `flask db upgrade` has created the schema
    if not inspect(db.engine).has_table("roles"):
        return
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()
