from datetime import datetime
from pathlib import Path

from fastapi.templating import Jinja2Templates

from app.api.core.config import BASE_DIR, settings

TEMPLATE_DIR = Path(BASE_DIR) / "app/api/core/dependencies/email/templates"
email_templates = Jinja2Templates(directory=str(TEMPLATE_DIR))

email_templates.env.globals["current_year"] = datetime.now().year
email_templates.env.globals["APP_URL"] = settings.PUBLIC_BASE_URL
email_templates.env.globals["APP_NAME"] = settings.APP_NAME
email_templates.env.globals["APP_TAGLINE"] = settings.APP_TAGLINE
