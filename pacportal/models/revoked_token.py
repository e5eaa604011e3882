"""RevokedToken model - jti blocklist for member session JWTs"""
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from pacportal.database import Base


class RevokedToken(Base):
    """Stores revoked member token IDs (jti claims).

    A jti is inserted on logout. decode_member_token() checks this table on
    every request that carries a member token. expires_at mirrors the token's
    original exp so old rows can be pruned safely.
    """

    __tablename__ = "revoked_tokens"

    id = Column(Integer, primary_key=True, index=True)
    jti = Column(String(36), unique=True, nullable=False, index=True)
    revoked_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)  # original token exp - for TTL cleanup
