"""Book Network backend: accounts, one-time codes and JWT authentication."""
