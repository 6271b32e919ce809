"""Small helpers shared by the clients, reconcilers and provider facade."""
