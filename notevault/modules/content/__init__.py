"""Content Module - categories, universities and the sitemap."""
from notevault.modules.content.models import Category, University

__all__ = ["Category", "University"]
