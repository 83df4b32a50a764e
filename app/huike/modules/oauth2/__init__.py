"""OAuth2-style access/refresh tokens issued to admin users."""
