"""
Track Lambda Function - Entry point for the storefront tracking API.

This module serves as the Lambda function entry point that delegates to the
track handler in the service package.
"""

import os
import sys
from typing import Any, Dict

# Add the service package to the Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from aws_lambda_powertools.utilities.typing import LambdaContext
from tracking_proxy.handlers.track_handler import lambda_handler as track_handler


def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    """
    Lambda function entry point for ``/track``.

    Args:
        event: Lambda event payload (API Gateway event)
        context: Lambda context object

    Returns:
        API Gateway response dictionary
    """
    return track_handler(event, context)
