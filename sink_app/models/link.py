from sqlalchemy import Column, Integer, String

from sink_app.database.connection import Base


class Link(Base):
    """
    Short link record.

    Timestamps are unix seconds. Access analytics are not stored here;
    they go to the analytics storage keyed by ``id``.
    """
    __tablename__ = "links"

    id = Column(String(26), primary_key=True)
    slug = Column(String(2048), unique=True, nullable=False, index=True)
    url = Column(String(2048), nullable=False)
    created_at = Column(Integer, nullable=False, index=True)
    updated_at = Column(Integer, nullable=False)
    expiration = Column(Integer, nullable=True)
    title = Column(String(2048), nullable=True)
    description = Column(String(2048), nullable=True)
    image = Column(String(2048), nullable=True)
    comment = Column(String(2048), nullable=True)