from flask import Blueprint

testimonials = Blueprint('testimonials', __name__)

from app.testimonials import routes  # noqa: F401, E402
from app.testimonials import models  # noqa: F401, E402
