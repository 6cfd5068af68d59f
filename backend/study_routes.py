import logging

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from database import (
    MATERIALS,
    NOTES,
    REVIEWS,
    delete_by_id,
    get_db,
    now_iso,
    serialize_docs,
    update_by_id,
)
from schemas import MaterialCreate, MaterialUpdate, NoteCreate, NoteUpdate, ReviewCreate

logger = logging.getLogger(__name__)

study_router = APIRouter(prefix="/api", tags=["Study"])


# Reviews


@study_router.post("/reviews")
async def create_review(payload: ReviewCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    review_doc = payload.model_dump()
    review_doc["createdAt"] = now_iso()
    result = await db[REVIEWS].insert_one(review_doc)
    return {"success": True, "reviewId": str(result.inserted_id)}


@study_router.get("/reviews/{session_id}")
async def list_reviews(session_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    reviews = await db[REVIEWS].find({"studySessionId": session_id}).to_list(None)
    return {"success": True, "reviews": serialize_docs(reviews)}


# Notes


@study_router.post("/notes")
async def create_note(payload: NoteCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    note_doc = payload.model_dump()
    note_doc["createdAt"] = now_iso()
    result = await db[NOTES].insert_one(note_doc)
    return {"success": True, "noteId": str(result.inserted_id)}


@study_router.get("/notes/{email}")
async def list_notes(email: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    notes = await db[NOTES].find({"email": email}).to_list(None)
    return {"success": True, "notes": serialize_docs(notes)}


@study_router.put("/notes/{note_id}")
async def update_note(note_id: str, payload: NoteUpdate, db: AsyncIOMotorDatabase = Depends(get_db)):
    await update_by_id(db[NOTES], note_id, payload.model_dump(exclude_none=True), "Note")
    return {"success": True}


@study_router.delete("/notes/{note_id}")
async def delete_note(note_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    await delete_by_id(db[NOTES], note_id, "Note")
    return {"success": True}


# Materials


@study_router.get("/materials/{session_id}")
async def list_session_materials(session_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    materials = await db[MATERIALS].find({"studySessionId": session_id}).to_list(None)
    return {"success": True, "materials": serialize_docs(materials)}


@study_router.post("/tutor/materials")
async def upload_material(payload: MaterialCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    material_doc = payload.model_dump()
    material_doc["uploadedAt"] = now_iso()
    result = await db[MATERIALS].insert_one(material_doc)
    logger.info("Tutor %s uploaded material %s", payload.tutorEmail, result.inserted_id)
    return {"success": True, "materialId": str(result.inserted_id)}


@study_router.get("/tutor/materials/all")
async def list_all_materials(db: AsyncIOMotorDatabase = Depends(get_db)):
    materials = await db[MATERIALS].find({}).to_list(None)
    return {"success": True, "materials": serialize_docs(materials)}


@study_router.get("/tutor/materials/{email}")
async def list_tutor_materials(email: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    materials = await db[MATERIALS].find({"tutorEmail": email}).to_list(None)
    return {"success": True, "materials": serialize_docs(materials)}


@study_router.put("/tutor/materials/{material_id}")
async def update_material(
    material_id: str,
    payload: MaterialUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await update_by_id(db[MATERIALS], material_id, payload.model_dump(exclude_none=True), "Material")
    return {"success": True}


@study_router.delete("/tutor/materials/{material_id}")
async def delete_material(material_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    await delete_by_id(db[MATERIALS], material_id, "Material")
    return {"success": True}
