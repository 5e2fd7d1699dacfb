"""
MongoDB Connection Service

Provides the MongoDB connection and the queries the reconciliation flow runs
against the issuance collections (projects, tranches, subscriptions,
coupon schedules, payments, payment proofs, proof analyses).
"""

import os
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient

from obligations.utils.logger import log_message

load_dotenv()

# MongoDB configuration
MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
MONGODB_DB_NAME = os.getenv("MONGODB_DB_NAME", "obligations")

PROJECTS = "projects"
TRANCHES = "tranches"
INVESTORS = "investors"
SUBSCRIPTIONS = "subscriptions"
ECHEANCES = "coupon_schedules"
PAYMENTS = "payments"
PAYMENT_PROOFS = "payment_proofs"
PROOF_ANALYSES = "proof_analyses"

# Global MongoDB client
_client: AsyncIOMotorClient = None
_database = None


def get_mongodb_client() -> AsyncIOMotorClient:
    """
    Get or create MongoDB client (singleton pattern).

    Returns:
        AsyncIOMotorClient: MongoDB client instance
    """
    global _client
    if _client is None:
        _client = AsyncIOMotorClient(MONGODB_URL)
        log_message("info", f"Connected to MongoDB at {MONGODB_URL}")
    return _client


def get_database():
    """
    Get MongoDB database instance.

    Returns:
        Database: MongoDB database instance
    """
    global _database
    if _database is None:
        client = get_mongodb_client()
        _database = client[MONGODB_DB_NAME]
        log_message("info", f"Using database: {MONGODB_DB_NAME}")
    return _database


async def close_mongodb_connection():
    """
    Close MongoDB connection.
    """
    global _client, _database
    if _client:
        _client.close()
        _client = None
        _database = None
        log_message("info", "MongoDB connection closed")


def new_id() -> str:
    """Identifier for records created by this service."""
    return str(uuid4())


async def create_indexes():
    """
    Create the indexes used by the reconciliation queries.
    """
    db = get_database()
    await db[SUBSCRIPTIONS].create_index("tranche_id")
    await db[ECHEANCES].create_index([("subscription_id", 1), ("due_date", 1)])
    await db[PAYMENTS].create_index("tranche_id")
    await db[PAYMENT_PROOFS].create_index([("payment_id", 1), ("created_at", -1)])
    await db[PROOF_ANALYSES].create_index("created_at")
    log_message("info", "Created reconciliation indexes")


# ---------------------------------------------------------
# Issuance lookups
# ---------------------------------------------------------

async def get_project(project_id: str) -> Optional[Dict[str, Any]]:
    return await get_database()[PROJECTS].find_one({"_id": project_id})


async def get_tranche(tranche_id: str) -> Optional[Dict[str, Any]]:
    return await get_database()[TRANCHES].find_one({"_id": tranche_id})


async def get_tranche_subscriptions(tranche_id: str) -> List[Dict[str, Any]]:
    """
    Get the subscriptions of a tranche with the investor legal name joined in.

    Args:
        tranche_id: Tranche identifier

    Returns:
        List[dict]: Subscription documents, each with an 'investor_name' key
    """
    db = get_database()
    subscriptions = await db[SUBSCRIPTIONS].find({"tranche_id": tranche_id}).to_list(length=None)
    if not subscriptions:
        return []

    investor_ids = list({s["investor_id"] for s in subscriptions if s.get("investor_id")})
    investors = await db[INVESTORS].find({"_id": {"$in": investor_ids}}).to_list(length=None)
    names = {inv["_id"]: inv.get("legal_name", "") for inv in investors}

    for sub in subscriptions:
        sub["investor_name"] = names.get(sub.get("investor_id"), "")
    return subscriptions


async def get_investor(investor_id: str) -> Optional[Dict[str, Any]]:
    return await get_database()[INVESTORS].find_one({"_id": investor_id})


async def get_echeances(
    subscription_ids: List[str], due_date: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Get coupon schedule entries for a set of subscriptions, ordered by due date.

    Args:
        subscription_ids: Subscriptions to include
        due_date: Restrict to one due date (YYYY-MM-DD)
    """
    query: Dict[str, Any] = {"subscription_id": {"$in": list(subscription_ids)}}
    if due_date:
        query["due_date"] = due_date
    cursor = get_database()[ECHEANCES].find(query).sort("due_date", 1)
    return await cursor.to_list(length=None)


async def mark_echeance_paid(
    subscription_id: str, due_date: str, payment_id: str, amount_paid: float
) -> bool:
    """
    Link a payment to the échéance of a subscription and mark it paid.

    Returns:
        bool: True if an échéance was updated
    """
    result = await get_database()[ECHEANCES].update_one(
        {"subscription_id": subscription_id, "due_date": due_date},
        {"$set": {
            "status": "paid",
            "paid_at": datetime.utcnow(),
            "amount_paid": amount_paid,
            "payment_id": payment_id,
        }},
    )
    if result.modified_count == 0:
        log_message("warning", f"No échéance updated for subscription={subscription_id} due_date={due_date}")
    return result.modified_count > 0


# ---------------------------------------------------------
# Payments
# ---------------------------------------------------------

async def get_payment(payment_id: str) -> Optional[Dict[str, Any]]:
    return await get_database()[PAYMENTS].find_one({"_id": payment_id})


async def insert_payment(payment: Dict[str, Any]) -> Dict[str, Any]:
    """
    Insert a payment record.

    Args:
        payment: Payment fields; '_id' is generated when missing

    Returns:
        dict: The stored document
    """
    doc = {"_id": new_id(), "created_at": datetime.utcnow(), **payment}
    await get_database()[PAYMENTS].insert_one(doc)
    log_message("info", f"Inserted payment {doc['_id']} amount={doc.get('amount')}")
    return doc


async def update_payment_status(payment_id: str, status: str) -> bool:
    result = await get_database()[PAYMENTS].update_one(
        {"_id": payment_id},
        {"$set": {"status": status, "updated_at": datetime.utcnow()}},
    )
    log_message("info", f"Payment {payment_id} status -> {status}")
    return result.matched_count > 0


# ---------------------------------------------------------
# Payment proofs
# ---------------------------------------------------------

async def insert_payment_proof(proof: Dict[str, Any]) -> Dict[str, Any]:
    doc = {"_id": new_id(), "created_at": datetime.utcnow(), **proof}
    await get_database()[PAYMENT_PROOFS].insert_one(doc)
    log_message("info", f"Inserted proof {doc['_id']} for payment {doc.get('payment_id')}")
    return doc


async def get_payment_proof(proof_id: str) -> Optional[Dict[str, Any]]:
    return await get_database()[PAYMENT_PROOFS].find_one({"_id": proof_id})


async def list_payment_proofs(payment_id: str) -> List[Dict[str, Any]]:
    cursor = get_database()[PAYMENT_PROOFS].find({"payment_id": payment_id}).sort("created_at", -1)
    return await cursor.to_list(length=None)


async def delete_payment_proof(proof_id: str) -> bool:
    result = await get_database()[PAYMENT_PROOFS].delete_one({"_id": proof_id})
    return result.deleted_count > 0


async def count_payment_proofs(payment_id: str) -> int:
    return await get_database()[PAYMENT_PROOFS].count_documents({"payment_id": payment_id})


# ---------------------------------------------------------
# Proof analyses
# ---------------------------------------------------------

async def insert_proof_analysis(analysis: Dict[str, Any]) -> Dict[str, Any]:
    doc = {"_id": new_id(), "created_at": datetime.utcnow(), **analysis}
    await get_database()[PROOF_ANALYSES].insert_one(doc)
    return doc


async def get_proof_analysis(analysis_id: str) -> Optional[Dict[str, Any]]:
    return await get_database()[PROOF_ANALYSES].find_one({"_id": analysis_id})


async def update_proof_analysis_status(analysis_id: str, status: str) -> bool:
    result = await get_database()[PROOF_ANALYSES].update_one(
        {"_id": analysis_id},
        {"$set": {"status": status, "updated_at": datetime.utcnow()}},
    )
    return result.matched_count > 0
