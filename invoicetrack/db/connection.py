import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional, Type
from urllib.parse import quote_plus

from sqlalchemy import create_engine, event, inspect, text, MetaData
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from sqlalchemy.pool import QueuePool

from invoicetrack.config import InvoiceTrackConfig

# Configure logging
logger = logging.getLogger(__name__)

metadata = MetaData()
Base = declarative_base(metadata=metadata)

REQUIRED_TABLES = ['users', 'invoices', 'action_log']


def get_base() -> Type:
    """
    Get the base class for declarative models

    Returns:
        Base class for declarative models
    """
    return Base


class Database:
    """
    Database connection manager for InvoiceTrack

    Handles both SQLite and PostgreSQL connections with proper configuration
    and connection pooling. One instance is built by the caller and passed to
    the services; nothing in the package holds a process-wide handle.
    """

    def __init__(self, config: Optional[InvoiceTrackConfig] = None):
        """
        Initialize database connection

        Args:
            config: InvoiceTrackConfig instance. If None, the default configuration is used.
        """
        self.config = config if config is not None else InvoiceTrackConfig()
        self.engine = None
        self.Session = None
        self._initialize()

    @property
    def db_type(self) -> str:
        return self.config.get('database.type', 'sqlite')

    @property
    def supports_row_locks(self) -> bool:
        """SQLite has no SELECT ... FOR UPDATE; the whole file is locked on write instead"""
        return self.db_type in ['postgresql', 'postgres']

    def _create_sqlite_engine(self, db_config):
        db_path = Path(db_config.get('sqlite', {}).get('path', db_config.get('path', 'invoicetrack.db')))

        # Ensure directory exists
        db_path.parent.mkdir(parents=True, exist_ok=True)

        engine = create_engine(
            f'sqlite:///{db_path}',
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=1800,
            connect_args={
                'timeout': 30,  # Connection timeout in seconds
                'check_same_thread': False  # Allow multiple threads
            }
        )

        # Enable foreign key support
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    def _create_postgres_engine(self, db_config):
        postgres_config = db_config.get('postgres', db_config.get('postgresql', {}))
        host = postgres_config.get('host', 'localhost')
        port = postgres_config.get('port', 5432)
        database = postgres_config.get('database', 'invoicetrack')
        user = postgres_config.get('user', 'postgres')
        password = postgres_config.get('password', '')

        # URL-encode user and password to handle special characters
        user_encoded = quote_plus(user)
        password_encoded = quote_plus(password)
        sslmode = postgres_config.get('sslmode', 'prefer')

        connection_url = f'postgresql://{user_encoded}:{password_encoded}@{host}:{port}/{database}?sslmode={sslmode}'
        return create_engine(
            connection_url,
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=1800
        )

    def _initialize(self):
        """Initialize database connection and session"""
        max_retries = 3
        retry_delay = 1  # seconds

        db_config = self.config.get_database_config()
        for attempt in range(max_retries):
            try:
                if self.db_type == 'sqlite':
                    self.engine = self._create_sqlite_engine(db_config)
                else:
                    self.engine = self._create_postgres_engine(db_config)

                # Test connection
                with self.engine.connect() as conn:
                    conn.execute(text("SELECT 1"))

                # Create session factory
                self.Session = sessionmaker(
                    bind=self.engine,
                    expire_on_commit=False,
                    autocommit=False,
                    autoflush=False
                )
                logger.debug(f"Connected to {self.db_type} database")
                return

            except SQLAlchemyError as e:
                if attempt < max_retries - 1:
                    logger.warning(f"Database connection attempt {attempt + 1} failed: {str(e)}. Retrying in {retry_delay} seconds...")
                    time.sleep(retry_delay)
                    retry_delay *= 2  # Exponential backoff
                else:
                    raise RuntimeError(f"Failed to connect to database after {max_retries} attempts: {str(e)}")

    def get_engine(self):
        """Get SQLAlchemy engine instance"""
        return self.engine

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """
        Get a database session with transaction management

        Everything done through the yielded session is committed together, or
        rolled back together if the block raises.

        Yields:
            SQLAlchemy session
        """
        session = self.Session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database transaction error: {str(e)}")
            raise
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_tables(self) -> None:
        """Create all tables defined in the metadata"""
        # Import models so they register with the metadata
        from invoicetrack.db import models  # noqa: F401
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create database tables: {str(e)}")
            raise

        tables = inspect(self.engine).get_table_names()
        missing_tables = [table for table in REQUIRED_TABLES if table not in tables]
        if missing_tables:
            raise RuntimeError(f"Failed to create required tables: {', '.join(missing_tables)}")
        logger.info("Database tables initialized successfully")

    def drop_tables(self) -> None:
        """Drop all tables defined in the metadata"""
        Base.metadata.drop_all(self.engine)

    def dispose(self) -> None:
        """Close all database connections"""
        if self.engine:
            self.engine.dispose()
