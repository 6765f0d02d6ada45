"""
Document Registry API Router

Provides endpoints for:
- Registering a document fingerprint
- Verifying a fingerprint against the registry
- Listing and exporting registered documents
- Verification history
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from app.core.errors import ErrorResponse
from app.services.registration import RegistrationService, get_registration_service
from app.services.reporting import ExportFormat, ReportingService, get_reporting_service
from app.services.verification import VerificationService, get_verification_service


router = APIRouter(prefix="/api/documents", tags=["Documents"])
verifications_router = APIRouter(prefix="/api/verifications", tags=["Verifications"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class RegisterRequest(BaseModel):
    """
    Registration request. Fields are optional here so that missing values
    are reported by the registration rules rather than as a 422.
    """
    filename: Optional[str] = None
    file_hash: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    uploader_address: Optional[str] = None
    tags: Optional[list[str]] = None


class RegisterResponse(BaseModel):
    success: bool
    document_id: str
    message: str


class VerifyRequest(BaseModel):
    file_hash: Optional[str] = None
    verifier_address: Optional[str] = None


class DocumentSummary(BaseModel):
    id: str
    filename: str
    file_size: int
    mime_type: str


class BlockchainInfo(BaseModel):
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None
    owner_address: str
    block_timestamp: Optional[int] = None
    status: str


class VerifyResponse(BaseModel):
    success: bool
    status: str
    message: str
    document: Optional[DocumentSummary] = None
    blockchain: Optional[BlockchainInfo] = None


# =============================================================================
# REGISTRATION & VERIFICATION
# =============================================================================

@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def register_document(
    request: RegisterRequest,
    service: RegistrationService = Depends(get_registration_service),
):
    """
    Register a document fingerprint.
    The document starts pending and is confirmed in the background.
    """
    result = await service.register(
        filename=request.filename,
        file_hash=request.file_hash,
        file_size=request.file_size,
        mime_type=request.mime_type,
        uploader_address=request.uploader_address,
        tags=request.tags,
    )
    if result.error is not None:
        raise result.error
    return result.to_dict()


@router.post(
    "/verify",
    response_model=VerifyResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}},
)
async def verify_document(
    request: VerifyRequest,
    service: VerificationService = Depends(get_verification_service),
):
    """
    Verify a fingerprint. Returns verified, tampered or not_found.
    The attempt is recorded only when verifier_address is given.
    """
    result = await service.verify(request.file_hash, request.verifier_address)
    if result.error is not None:
        raise result.error
    return result.to_dict()


# =============================================================================
# LISTING & EXPORT
# =============================================================================

@router.get("")
async def list_documents(
    status: Optional[str] = Query(None, description="pending, confirmed or not_found"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: ReportingService = Depends(get_reporting_service),
):
    """List registered documents, newest first."""
    return await service.list_documents(status=status, limit=limit, offset=offset)


@router.get("/export")
async def export_proofs(
    format: ExportFormat = Query(ExportFormat.CSV),
    status: Optional[str] = Query("confirmed"),
    service: ReportingService = Depends(get_reporting_service),
):
    """Download proofs as a CSV or JSON attachment."""
    export = await service.export_proofs(export_format=format, status=status)
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@router.get("/{document_id}", responses={404: {"model": ErrorResponse}})
async def get_document(
    document_id: str,
    service: ReportingService = Depends(get_reporting_service),
):
    """Get a document and its ledger entry."""
    return {"success": True, "document": await service.get_document(document_id)}


# =============================================================================
# VERIFICATION HISTORY
# =============================================================================

@verifications_router.get("")
async def list_verifications(
    file_hash: Optional[str] = Query(None),
    document_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    service: ReportingService = Depends(get_reporting_service),
):
    """Recorded verification attempts, newest first."""
    records = await service.verification_history(
        file_hash=file_hash,
        document_id=document_id,
        limit=limit,
    )
    return {"success": True, "verifications": records, "count": len(records)}
