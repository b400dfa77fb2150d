"""TeenSkill marketplace API."""
