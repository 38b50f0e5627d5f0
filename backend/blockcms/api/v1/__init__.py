from flask import Blueprint

# Create the versioned blueprint
v1_bp = Blueprint("v1", __name__)

# Import route modules so they register with v1_bp
from . import health
from . import collections
from . import contents
from . import elements
from . import versions
from . import custom_elements
from . import filter_views
from . import audit
