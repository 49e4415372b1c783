"""
Decode all SSIS packages in the input directory and save each model as JSON.
Outputs are named based on the input file names.

Run from the repository root:
    python -m scripts.parse_all_packages [input_dir] [output_dir]
"""
import os
import sys
from pathlib import Path

from analysis import classify_component, classify_task_type
from parsing import PackageAnalysisError, load_package


def parse_package(input_file: str, output_dir: str = "output"):
    """Decode a single package and save the model."""

    # Create output directory if it doesn't exist
    os.makedirs(output_dir, exist_ok=True)

    input_path = Path(input_file)
    output_file = os.path.join(output_dir, f"{input_path.stem}_package.json")

    print(f"\n{'='*80}")
    print(f"Processing: {input_file}")
    print(f"{'='*80}")

    try:
        package = load_package(input_file)
    except PackageAnalysisError as e:
        print(f"\n✗ Error decoding {input_file}: {e}")
        return False

    with open(output_file, 'w', encoding='utf-8') as f:
        f.write(package.model_dump_json(indent=2))

    # Display summary
    print(f"\n✓ Package: {package.name}")
    print(f"  Connections: {len(package.connections)}")
    print(f"  Variables: {len(package.variables)}")
    print(f"  Executables: {sum(1 for _ in package.iter_tasks())}")
    print(f"  Event Handlers: {len(package.event_handlers)}")

    for task in package.iter_tasks():
        print(f"\n  {task.name} ({classify_task_type(task.creation_name)})")
        if task.data_flow is None:
            continue
        for component in task.data_flow.components:
            print(f"      • {component.name} ({classify_component(component.class_id).value})")

    print(f"\n✓ Output saved to: {output_file}")
    return True


def main():
    """Decode all DTSX files in the input directory."""

    input_dir = sys.argv[1] if len(sys.argv) > 1 else "input"
    output_dir = sys.argv[2] if len(sys.argv) > 2 else "output"

    print("="*80)
    print("SSIS PACKAGE DECODER - BATCH PROCESSING")
    print("="*80)

    dtsx_files = sorted(Path(input_dir).glob("*.dtsx"))

    if not dtsx_files:
        print(f"\n✗ No .dtsx files found in {input_dir}/")
        return 1

    print(f"\nFound {len(dtsx_files)} package(s) to process:")
    for f in dtsx_files:
        print(f"  • {f.name}")

    success_count = 0
    for dtsx_file in dtsx_files:
        if parse_package(str(dtsx_file), output_dir):
            success_count += 1

    print("\n" + "="*80)
    print("BATCH PROCESSING COMPLETE")
    print("="*80)
    print(f"\nSuccessfully processed: {success_count}/{len(dtsx_files)} packages")
    print(f"Output directory: {output_dir}/")

    return 0 if success_count == len(dtsx_files) else 1


if __name__ == "__main__":
    sys.exit(main())
