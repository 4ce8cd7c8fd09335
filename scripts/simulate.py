"""
Concurrency Simulation Script

Fires many orders at one restaurant at the same time and checks that no
inventory decrement or table link was lost.
Run from project root with the API up: python scripts/simulate.py

Version: 1.0.0
"""

import argparse
import asyncio
import random
import sys
import time
import uuid
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
API_PREFIX = "/api"
TOTAL_ORDERS = 50
TABLE_COUNT = 10

POTATO_PER_PORTION = 200
STARTING_POTATO = 50_000


def api(path: str) -> str:
    return f"{API_BASE_URL}{API_PREFIX}{path}"


async def setup_restaurant(client: httpx.AsyncClient) -> tuple[str, str]:
    """Create a throwaway restaurant with one stocked product."""
    response = await client.post(
        api("/signup"),
        json={
            "email": f"sim-{uuid.uuid4().hex[:8]}@example.test",
            "password": "simulation",
            "restaurantName": "Simulation Bistro",
            "paymentToken": "PAID",
        },
    )
    response.raise_for_status()
    restaurant_id = response.json()["restaurantId"]

    response = await client.post(
        api("/products"),
        json={
            "restaurantId": restaurant_id,
            "name": "Fries",
            "price": 4.5,
            "category": "food",
            "ingredients": [{"name": "potato", "quantity": POTATO_PER_PORTION, "unit": "g"}],
        },
    )
    response.raise_for_status()
    product_id = response.json()["productId"]

    response = await client.post(
        api("/inventory"),
        json={
            "restaurantId": restaurant_id,
            "ingredient": "potato",
            "quantity": STARTING_POTATO,
            "unit": "g",
        },
    )
    response.raise_for_status()
    return restaurant_id, product_id


async def send_order(
    client: httpx.AsyncClient,
    restaurant_id: str,
    product_id: str,
    order_num: int,
) -> dict[str, Any]:
    """Place one order for a random table."""
    portions = random.randint(1, 3)
    table_number = random.randint(1, TABLE_COUNT)
    start_time = time.time()

    try:
        response = await client.post(
            api("/orders"),
            json={
                "restaurantId": restaurant_id,
                "tableNumber": table_number,
                "items": [{
                    "productId": product_id,
                    "name": "Fries",
                    "quantity": portions,
                    "price": 4.5,
                    "category": "food",
                }],
            },
            timeout=30.0,
        )
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }

    elapsed = round(time.time() - start_time, 3)
    if response.status_code != 200:
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }

    return {
        "order_num": order_num,
        "success": True,
        "order_id": response.json()["orderId"],
        "portions": portions,
        "table": table_number,
        "time": elapsed,
    }


async def run_simulation(num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    """
    Run the concurrency simulation.

    Args:
        num_orders: Number of orders fired concurrently
    """
    print("=" * 70)
    print("CONCURRENCY SIMULATION")
    print("=" * 70)
    print(f"Total Orders: {num_orders}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        restaurant_id, product_id = await setup_restaurant(client)
        print(f"\nRestaurant {restaurant_id} ready, firing orders...\n")

        start_time = time.time()
        results = await asyncio.gather(*[
            send_order(client, restaurant_id, product_id, i + 1)
            for i in range(num_orders)
        ])
        total_time = round(time.time() - start_time, 2)

        inventory = (await client.get(api(f"/inventory/{restaurant_id}"))).json()["inventory"]
        tables = (await client.get(api(f"/tables/{restaurant_id}"))).json()["tables"]

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    expected_potato = STARTING_POTATO - POTATO_PER_PORTION * sum(r["portions"] for r in successful)
    actual_potato = next(item["quantity"] for item in inventory if item["ingredient"] == "potato")
    linked = sum(len(table["orders"]) for table in tables)

    print("\n" + "=" * 70)
    print("SIMULATION RESULTS")
    print("=" * 70)
    print(f"\nSuccessful Orders: {len(successful)}/{num_orders}")
    print(f"Failed Orders: {len(failed)}/{num_orders}")
    print(f"Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print(f"Average Response: {avg_time}s")

    if failed:
        print("\nFailed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("CONSISTENCY CHECKS")
    print("=" * 70)
    print(f"Potato stock: expected {expected_potato}g, found {actual_potato}g")
    print(f"Table links: expected {len(successful)}, found {linked}")

    consistent = actual_potato == expected_potato and linked == len(successful)
    print("OK: no lost updates" if consistent else "FAIL: lost updates detected")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "consistent": consistent,
    }


async def preflight() -> bool:
    """Check the API is reachable before firing orders."""
    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(f"{API_BASE_URL}/health")
        except httpx.HTTPError as e:
            print(f"Health check failed: {e}")
            return False

    if response.status_code != 200:
        print(f"Health check failed: {response.text}")
        return False

    data = response.json()
    print(f"Status: {data.get('status')} ({data.get('store')})")
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrency Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--base-url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.base_url

    if not asyncio.run(preflight()):
        sys.exit(1)

    summary = asyncio.run(run_simulation(num_orders=args.orders))
    sys.exit(0 if summary["consistent"] else 1)
