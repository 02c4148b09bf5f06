import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///handcricket.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Query API and Socket.IO are open to any origin
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    # Game log sink
    GAME_LOG_ENABLED = os.environ.get('GAME_LOG_ENABLED', '1') == '1'
    GAME_LOG_DIR = os.environ.get('GAME_LOG_DIR') or './logs/games'
    # json, csv or txt
    GAME_LOG_FORMAT = os.environ.get('GAME_LOG_FORMAT', 'json')
    # One event file per game vs a single daily file
    GAME_LOG_SEPARATE_FILES = os.environ.get('GAME_LOG_SEPARATE_FILES', '1') == '1'
    GAME_LOG_CONSOLE = os.environ.get('GAME_LOG_CONSOLE', '1') == '1'
    GAME_LOG_CONSOLE_LEVEL = os.environ.get('GAME_LOG_CONSOLE_LEVEL', 'info')
    # Index completed sessions in the game_log table
    GAME_LOG_DATABASE = os.environ.get('GAME_LOG_DATABASE', '1') == '1'
    # Retention used by `flask logs-cleanup`
    LOG_RETENTION_MAX_FILES = int(os.environ.get('LOG_RETENTION_MAX_FILES', '1000'))
    LOG_RETENTION_MAX_AGE_DAYS = int(os.environ.get('LOG_RETENTION_MAX_AGE_DAYS', '30'))
