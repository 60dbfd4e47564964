from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS

cors = CORS()

# remote mirror of the record store
db = SQLAlchemy()
migrate = Migrate()

# bearer tokens for scripted API access
jwt = JWTManager()
