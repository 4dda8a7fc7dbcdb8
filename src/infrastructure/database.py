from flask import current_app, g
from pymongo import MongoClient
from werkzeug.local import LocalProxy

from src.infrastructure.repositories import MongoGateway

def get_db():
    """
    Returns a proxy to the MongoDB database.
    Uses Flask's application context to manage the connection.
    """
    if 'db' not in g:
        if 'mongo_client' not in current_app.extensions:
            current_app.extensions['mongo_client'] = MongoClient(current_app.config['MONGO_URI'], tz_aware=True)

        # The database name is expected to be part of the MONGO_URI
        # e.g., mongodb://host:port/dbname
        g.db = current_app.extensions['mongo_client'].get_database()

    return g.db

def get_gateway():
    """
    Returns the persistence gateway for the current app.

    An app created with an explicit gateway (tests, scripts) keeps using it;
    otherwise a MongoGateway is built over the request's database.
    """
    if 'gateway' in current_app.extensions:
        return current_app.extensions['gateway']
    if 'gateway' not in g:
        g.gateway = MongoGateway(get_db(), retry_attempts=current_app.config.get('GATEWAY_RETRY_ATTEMPTS', 3))
    return g.gateway

def init_app(app, gateway=None):
    """Initialize the database with the Flask app."""
    if gateway is not None:
        app.extensions['gateway'] = gateway

    # Close the database connection when the app context tears down
    @app.teardown_appcontext
    def close_db(exception):
        g.pop('gateway', None)
        g.pop('db', None)
        # Note: We don't close the client here as it's shared via extensions

# Use a LocalProxy to access the gateway within the application context
gateway = LocalProxy(get_gateway)
