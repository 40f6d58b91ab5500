from fastapi import APIRouter, Depends

from app.core.security import TokenSigner
from app.dependencies import get_token_signer

router = APIRouter()


@router.get("/jwks.json")
async def get_jwks(signer: TokenSigner = Depends(get_token_signer)):
    """
    Public signing keys for edge verifiers.

    Empty key list unless RS256 signing is configured with a public key.
    """
    return signer.jwks()
