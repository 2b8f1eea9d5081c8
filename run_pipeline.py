"""
Pipeline Runner
===============

Runs the complete pipeline (Stage 1 → Stage 3 → Stage 4) with user input:
generation, security analysis with auto-fix, and testnet deployment.
Edit the USER_INPUT variable below to specify your contract description.

The deployer key is read from the environment (DEPLOYER_PRIVATE_KEY by
default, .env supported) and is never written to the output directory.
"""

import json
import os
import sys
from datetime import datetime
from decimal import Decimal, InvalidOperation

import config
from stage_1 import generate_contract
from stage_3 import run_detection, run_repair
from stage_4 import DeployConfig, DeploymentOrchestrator, RpcFailoverProxy
from workflow import PipelineError, WorkflowStateStore


# ============================================================================
# CONFIGURATION - Edit these values to customize the pipeline
# ============================================================================

USER_INPUT = """Create a simple token vault where users can deposit and withdraw ETH."""

STAGE_CONFIG = {
    "enable_analysis": True,    # Set to False to skip security analysis (blocks deployment)
    "skip_auto_fix": False,     # Set to True for analysis only (no auto-fix)
    "max_iterations": 2,        # Maximum number of fix iterations (1-5)
    "deploy": False,            # Set to True to deploy when the contract passes the gate
    "network": config.DEFAULT_NETWORK,
    "key_env": config.SIGNING_KEY_ENV,
    "gas_limit": None,          # Fallback gas limit when estimation fails
    "gas_price": None,          # Gas price in gwei (None = query the network)
    "allow_placeholder": False,
    "verbose": False,
}

# ============================================================================


def ensure(path: str):
    os.makedirs(path, exist_ok=True)


def save_json(path: str, data) -> None:
    with open(path, "w", encoding="utf8") as f:
        json.dump(data, f, indent=2)


def run_full_pipeline(user_input: str, options: dict):
    """
    Run the pipeline and persist every stage output.

    Returns:
        Dict with output_dir and the final workflow state, or None if
        generation failed
    """
    print("\n" + "=" * 80)
    print("RUNNING FULL PIPELINE (Generate → Analyze → Deploy)")
    print("=" * 80)
    print("\n📝 USER INPUT:")
    print(user_input)
    print("\n" + "-" * 80)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    outdir = os.path.join(config.OUTPUT_DIR, timestamp)
    ensure(outdir)

    store = WorkflowStateStore()
    verbose = options.get("verbose", False)

    # ------------------------------------------------------------------
    # Stage 1: Generation
    # ------------------------------------------------------------------
    print("\n[1/3] Stage 1: Generating contract...")
    print("-" * 80)
    try:
        generation = generate_contract(user_input, debug=verbose)
    except (PipelineError, ValueError) as e:
        print(f"❌ Stage 1 Failed: {e}")
        return None

    store.set_generated_code(generation.code, generation.compile_artifact)
    contract_name = generation.compile_artifact.contract_name if generation.compile_artifact else "Contract"

    sol_path = os.path.join(outdir, f"{contract_name}.sol")
    with open(sol_path, "w", encoding="utf8") as f:
        f.write(generation.code)
    save_json(os.path.join(outdir, "generation.json"), generation.to_dict())
    print(f"   📄 Saved: {sol_path}")

    lines = generation.code.split("\n")
    print("\n📄 Contract Preview (first 20 lines):")
    for i, line in enumerate(lines[:20], 1):
        print(f"   {i:3d} | {line}")
    if len(lines) > 20:
        print(f"   ... ({len(lines) - 20} more lines)")

    # ------------------------------------------------------------------
    # Stage 3: Security Analysis & Auto-Fix
    # ------------------------------------------------------------------
    repair = None
    if options.get("enable_analysis", True):
        print("\n[2/3] Stage 3: Security Analysis" +
              (" & Auto-Fix" if not options.get("skip_auto_fix") else ""))
        print("-" * 80)
        try:
            report = run_detection(store, verbose=verbose)
            save_json(os.path.join(outdir, "detection_report.json"), report.to_dict())

            if not options.get("skip_auto_fix") and report.blocking_findings():
                repair = run_repair(store, max_iterations=options.get("max_iterations", 2), verbose=verbose)
                save_json(os.path.join(outdir, "repair_report.json"), repair.to_dict())
                if repair.iterations:
                    final_path = os.path.join(outdir, f"final_{contract_name}.sol")
                    with open(final_path, "w", encoding="utf8") as f:
                        f.write(repair.final_code)
                    print(f"   📄 Saved: {final_path}")
        except PipelineError as e:
            print(f"⚠️  Stage 3 Failed: {e}")
            print("Deployment stays blocked until the contract passes analysis.")
    else:
        print("\n[2/3] Stage 3: Skipped (deployment stays blocked)")

    # ------------------------------------------------------------------
    # Stage 4: Deployment
    # ------------------------------------------------------------------
    deploy_result = None
    if options.get("deploy"):
        print("\n[3/3] Stage 4: Deployment")
        print("-" * 80)
        try:
            deploy_config = DeployConfig(
                network=options.get("network") or config.DEFAULT_NETWORK,
                signing_key=config.get_secret(options.get("key_env") or config.SIGNING_KEY_ENV) or "",
                gas_limit=options.get("gas_limit"),
                gas_price_hint=options.get("gas_price"),
            )
            orchestrator = DeploymentOrchestrator(
                store,
                proxy=RpcFailoverProxy(verbose=verbose),
                allow_placeholder=options.get("allow_placeholder", False),
                verbose=verbose,
            )
        except ValueError as e:
            print(f"❌ Network configuration error: {e}")
        else:
            deploy_result = orchestrator.deploy(deploy_config)
            record = deploy_result.to_dict()
            record.update(deploy_config.to_dict())
            save_json(os.path.join(outdir, "deployment.json"), record)
            if not deploy_result.success:
                print(f"❌ Deployment failed: {deploy_result.error}")
    else:
        print("\n[3/3] Stage 4: Skipped (use --deploy)")

    state = store.snapshot
    save_json(os.path.join(outdir, "workflow_state.json"), state.to_dict())

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------
    print("\n" + "=" * 80)
    print("✅ PIPELINE COMPLETE")
    print("=" * 80)
    print(f"\n📁 All outputs saved in: {outdir}")
    print(f"   • Ready for deployment: {state.is_ready_for_deployment}")
    if deploy_result is not None and deploy_result.success:
        print(f"   • Contract address: {deploy_result.contract_address}")

    return {
        "output_dir": outdir,
        "state": state,
        "repair": repair,
        "deployment": deploy_result,
    }


def run_health_check(network: str = None) -> int:
    """Print endpoint health; exit status 1 if a network has no healthy endpoint"""
    proxy = RpcFailoverProxy()
    report = proxy.health_check([network] if network else None)
    status = 0
    for name, entries in report.items():
        print(f"\n🔍 {name}")
        for entry in entries:
            if entry["healthy"]:
                print(f"   ✓ {entry['endpoint']}  block {entry['block_number']}  {entry['latency_ms']}ms")
            else:
                print(f"   ✗ {entry['endpoint']}  {entry['error']}")
        if not any(entry["healthy"] for entry in entries):
            status = 1
    return status


def main():
    """Main entry point"""
    import argparse

    parser = argparse.ArgumentParser(
        description="Run the complete pipeline (Generate → Analyze → Deploy)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Use USER_INPUT variable from file (default)
  python run_pipeline.py

  # Override with command-line input, analysis only
  python run_pipeline.py --input "Create an election system" --analysis-only

  # Generate, fix and deploy to Sepolia (key from DEPLOYER_PRIVATE_KEY)
  python run_pipeline.py --input "Create a token vault" --deploy --network sepolia

  # Check RPC endpoints
  python run_pipeline.py --health
        """
    )
    parser.add_argument("--input", "-i", type=str, help="Override USER_INPUT variable with command-line input")
    parser.add_argument("--skip-analysis", action="store_true", help="Skip security analysis (deployment stays blocked)")
    parser.add_argument("--analysis-only", action="store_true", help="Run analysis without auto-fix")
    parser.add_argument("--max-iterations", type=int, help="Maximum fix iterations")
    parser.add_argument("--deploy", action="store_true", help="Deploy the contract if it passes the security gate")
    parser.add_argument("--network", type=str, help=f"Target network (default: {config.DEFAULT_NETWORK})")
    parser.add_argument("--key-env", type=str, help=f"Environment variable holding the deployer key (default: {config.SIGNING_KEY_ENV})")
    parser.add_argument("--gas-limit", type=int, help="Gas limit used when estimation fails")
    parser.add_argument("--gas-price", type=str, help="Gas price in gwei")
    parser.add_argument("--allow-placeholder", action="store_true", help="Deploy placeholder bytecode if compilation is unavailable")
    parser.add_argument("--health", action="store_true", help="Check RPC endpoint health and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show detailed tool and RPC logs")

    args = parser.parse_args()

    try:
        if args.health:
            sys.exit(run_health_check(args.network))

        user_input = args.input or USER_INPUT
        if not user_input or not user_input.strip():
            print("❌ USER_INPUT is empty. Please edit the USER_INPUT variable in run_pipeline.py")
            print("   Or use --input flag: python run_pipeline.py --input 'Your description'")
            sys.exit(1)

        print("\n" + "=" * 80)
        print("SMART CONTRACT PIPELINE")
        print("=" * 80)
        print(f"\n📝 Input ({'command-line' if args.input else 'USER_INPUT variable'}): {user_input}")

        options = STAGE_CONFIG.copy()
        if args.skip_analysis:
            options["enable_analysis"] = False
        elif args.analysis_only:
            options["skip_auto_fix"] = True
        if args.max_iterations:
            options["max_iterations"] = args.max_iterations
        if args.deploy:
            options["deploy"] = True
        if args.network:
            options["network"] = args.network
        if args.key_env:
            options["key_env"] = args.key_env
        if args.gas_limit:
            options["gas_limit"] = args.gas_limit
        if args.gas_price:
            try:
                options["gas_price"] = Decimal(args.gas_price)
            except InvalidOperation:
                parser.error(f"invalid gas price: {args.gas_price}")
        if args.allow_placeholder:
            options["allow_placeholder"] = True
        if args.verbose:
            options["verbose"] = True

        print("\n⚙️  Pipeline Config:")
        print(f"   • Analysis: {options['enable_analysis']}")
        if options["enable_analysis"]:
            print(f"   • Auto-fix: {not options['skip_auto_fix']}")
            print(f"   • Max iterations: {options['max_iterations']}")
        print(f"   • Deploy: {options['deploy']}" + (f" ({options['network']})" if options["deploy"] else ""))

        result = run_full_pipeline(user_input, options)

        if result is None:
            print("\n❌ Pipeline failed. Check errors above.")
            sys.exit(1)
        deployment = result.get("deployment")
        if deployment is not None and not deployment.success:
            sys.exit(1)

    except KeyboardInterrupt:
        print("\n\n⚠️  Pipeline cancelled by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
