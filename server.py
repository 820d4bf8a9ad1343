#!/usr/bin/env python3
"""
M-Pesa STK Push Service - Entry Point
"""

from paybridge.main import main
import asyncio

if __name__ == "__main__":
    asyncio.run(main())
