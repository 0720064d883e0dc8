#!/usr/bin/env python3
"""
Main Evaluation Script for the Dining Philosophers Protocol

Runs all three scenarios on the simulated network and saves the results.
"""
import json
import time
from pathlib import Path
from scenarios import Scenario1, Scenario2, Scenario3


def run_all_scenarios(output_dir: str = "results", n_replications: int = 10):
    """Run all evaluation scenarios and save results."""

    # Create output directory
    Path(output_dir).mkdir(parents=True, exist_ok=True)

    print("="*80)
    print("DINING PHILOSOPHERS EVALUATION")
    print("="*80)
    print(f"\nResults will be saved to: {output_dir}/")
    print()

    # -------------------------------------------------------------------------
    # SCENARIO 1: Two philosophers
    # -------------------------------------------------------------------------
    print("\n" + "="*80)
    print("SCENARIO 1: TWO PHILOSOPHERS, 100 CYCLES")
    print("="*80)

    start_time = time.time()

    scenario1 = Scenario1()
    results1 = scenario1.run_experiment(n_replications=n_replications)

    print("\nResults:")
    print(f"  Completed runs: {results1['completed']}/{results1['replications']}")
    for name, count in results1['violations'].items():
        print(f"  {name:<18} {count} violations")
    wait = results1['mean_wait']
    print(f"  Hunger wait:       {wait['mean']:.1f}±{wait['std']:.1f} ms")

    elapsed = time.time() - start_time
    print(f"\nCompleted in {elapsed:.1f}s")

    with open(f"{output_dir}/scenario1_results.json", 'w') as f:
        json.dump(results1, f, indent=2)

    # -------------------------------------------------------------------------
    # SCENARIO 2: Five philosophers
    # -------------------------------------------------------------------------
    print("\n" + "="*80)
    print("SCENARIO 2: FIVE PHILOSOPHERS, ADJACENT MEALS")
    print("="*80)

    start_time = time.time()

    scenario2 = Scenario2()
    results2 = scenario2.run_experiment(n_replications=n_replications)

    print("\nResults:")
    print(f"  Adjacent overlaps:     {results2['adjacent_overlaps']} (must be 0)")
    overlaps = results2['non_adjacent_overlaps']
    print(f"  Non-adjacent overlaps: {overlaps['mean']:.1f}±{overlaps['std']:.1f} per run")
    util = results2['utilisation']
    print(f"  Utilisation:           {util['mean']:.3f}±{util['std']:.3f}")

    elapsed = time.time() - start_time
    print(f"\nCompleted in {elapsed:.1f}s")

    with open(f"{output_dir}/scenario2_results.json", 'w') as f:
        json.dump(results2, f, indent=2)

    # -------------------------------------------------------------------------
    # SCENARIO 3: Starvation and scaling
    # -------------------------------------------------------------------------
    print("\n" + "="*80)
    print("SCENARIO 3: STARVATION AND SCALING")
    print("="*80)

    start_time = time.time()

    scenario3 = Scenario3()
    n_values = [2, 5, 50]
    results3 = scenario3.run_experiment(n_values, n_replications=n_replications)

    print(f"\n{'n':<6}{'starved':<10}{'min meals':<14}{'wait (ms)':<18}{'fairness':<10}")
    print("-" * 60)
    for n in n_values:
        r = results3[n]
        print(f"{n:<6}{r['starved']:<10}{r['min_meals']['mean']:<14.1f}"
              f"{r['mean_wait']['mean']:6.1f}±{r['mean_wait']['std']:<10.1f}"
              f"{r['fairness']['mean']:.3f}")

    scaling = scenario3.analyze_scaling(results3)
    print(f"\nLinear Regression (hunger wait vs n):")
    print(f"  {scaling['equation']}")
    print(f"  R² = {scaling['r_squared']:.4f}")

    elapsed = time.time() - start_time
    print(f"\nCompleted in {elapsed:.1f}s")

    with open(f"{output_dir}/scenario3_results.json", 'w') as f:
        serializable = {f"n{n}": v for n, v in results3.items()}
        serializable['scaling'] = scaling
        json.dump(serializable, f, indent=2)

    # -------------------------------------------------------------------------
    # SUMMARY
    # -------------------------------------------------------------------------
    total_violations = (
        sum(results1['violations'].values()) +
        sum(results2['violations'].values()) +
        sum(sum(results3[n]['violations'].values()) for n in n_values)
    )
    print("\n" + "="*80)
    print("EVALUATION COMPLETE")
    print("="*80)
    print(f"\nAll results saved to: {output_dir}/")
    print(f"\nProperty violations across all scenarios: {total_violations}")
    print(f"Runs with a starving philosopher: {sum(results3[n]['starved'] for n in n_values)}")


if __name__ == '__main__':
    import sys

    output_dir = sys.argv[1] if len(sys.argv) > 1 else "results"

    run_all_scenarios(output_dir)
