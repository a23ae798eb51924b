"""
Command line entry point.

Usage:
    # Print the compiled document
    predictions-transformer --input schema.json --bucket storage123

    # Environment-aware names, written to a file
    predictions-transformer --input schema.json --bucket 'storage123-${env}' --env dev --output build/predictions.json

    # Synthesize a CDK cloud assembly
    predictions-transformer --input schema.json --bucket storage123 --cdk-out cdk.out

The input file holds already-parsed fields:
    {"fields": [{"typeName": "Query", "fieldName": "...", "directives": [...]}],
     "auth": {"primary": {"type": "API_KEY"}}}
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .directives import FieldDefinition
from .errors import ConfigError, TransformerError
from .logging import get_logger
from .transformer import CompiledDocument, PredictionsTransformer

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Compile @predictions directives into resolvers and resources")
    parser.add_argument("--input", required=True, type=Path, help="Parsed schema JSON file")
    parser.add_argument("--bucket", help="Storage bucket name (may contain ${env})")
    parser.add_argument("--env", default=None, help="Environment name (default: none)")
    parser.add_argument("--stack-name", default=None, help="Stack name token used to derive the storage hash")
    parser.add_argument("--output", type=Path, default=None, help="Write the document here instead of stdout")
    parser.add_argument("--cdk-out", type=Path, default=None, help="Also synthesize a CDK cloud assembly here")
    return parser.parse_args(argv)


def load_schema(path: Path) -> Dict[str, Any]:
    try:
        with open(path) as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e.strerror or e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get("fields"), list):
        raise ConfigError(f"{path} must contain a 'fields' list")
    return data


def synth_cdk(document: CompiledDocument, outdir: Path, stack_name: Optional[str]) -> None:
    """Synthesize the document as a CDK app."""
    import aws_cdk as cdk

    from .cdk_stack import PredictionsStack

    app = cdk.App(outdir=str(outdir))
    PredictionsStack(app, "PredictionsStack", document, stack_name=stack_name)
    app.synth()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        schema = load_schema(args.input)
        fields = [FieldDefinition.from_dict(field) for field in schema["fields"]]
        document = PredictionsTransformer().compile(
            fields,
            storage_bucket=args.bucket or schema.get("storageBucket"),
            env_name=args.env,
            stack_name=args.stack_name,
            auth=schema.get("auth"),
        )
    except TransformerError as e:
        print(json.dumps(e.to_dict()), file=sys.stderr)
        return 1

    output = document.to_json()
    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(output + "\n")
        logger.info("Wrote compiled document", path=str(args.output))
    else:
        print(output)

    if args.cdk_out is not None:
        synth_cdk(document, args.cdk_out, args.stack_name)
        logger.info("Synthesized CDK assembly", path=str(args.cdk_out))

    return 0


if __name__ == "__main__":
    sys.exit(main())
