"""
Scenario 3: starvation freedom and scaling

Tests:
- Every philosopher eats at least once for n ∈ {2, 5, 50}
- Hunger wait (HUNGRY -> EATING) stays bounded as the table grows: a
  philosopher only ever waits on its two neighbours
- Meals are shared fairly (Jain's fairness index close to 1)

Varies:
- n ∈ {2, 5, 50} (number of philosophers)
"""
import numpy as np
from typing import Dict, List
from core.properties import check_all, hunger_waits
from simulation import Dinner


def jain_index(values: List[float]) -> float:
    """Jain's fairness index: 1 when all values are equal, 1/n at worst."""
    x = np.asarray(values, dtype=float)
    if not x.any():
        return 0.0
    return float(x.sum() ** 2 / (len(x) * (x ** 2).sum()))


class Scenario3:
    """
    Scenario 3: Starvation and Scaling

    Configuration:
    - n ∈ {2, 5, 50} philosophers
    - fixed simulated duration per run
    - think, eat ∈ [1, 2000] simulated ms
    - 10 replications per configuration
    """

    def __init__(self, duration: int = 200_000):
        self.duration = duration

    def run_single_replication(self, n: int, seed: int) -> Dict:
        dinner = Dinner(n, seed=seed).run(max_time=self.duration)
        events = dinner.trace()
        properties = check_all(events, n)
        waits = [w for agent in hunger_waits(events, n) for w in agent]

        return {
            'meals': dinner.meals(),
            'min_meals': min(dinner.meals()),
            'fairness': jain_index(dinner.meals()),
            'mean_wait': float(np.mean(waits)) if waits else 0.0,
            'max_wait': max(waits) if waits else 0,
            'violations': {name: len(v) for name, v in properties.items()},
        }

    def run_experiment(self, n_values: List[int], n_replications: int = 10) -> Dict:
        all_results = {n: [] for n in n_values}
        for n in n_values:
            print(f"Running n = {n}...")
            for replication in range(n_replications):
                all_results[n].append(self.run_single_replication(n, seed=replication))
        return {n: self._aggregate_results(all_results[n]) for n in n_values}

    def _aggregate_results(self, results: List[Dict]) -> Dict:
        aggregated = {
            'starved': int(sum(1 for r in results if r['min_meals'] == 0)),
            'violations': {
                name: int(sum(r['violations'][name] for r in results))
                for name in results[0]['violations']
            },
        }
        for metric in ['min_meals', 'fairness', 'mean_wait', 'max_wait']:
            values = [r[metric] for r in results]
            aggregated[metric] = {
                'mean': float(np.mean(values)),
                'std': float(np.std(values))
            }
        return aggregated

    def analyze_scaling(self, results: Dict[int, Dict]) -> Dict:
        """
        Linear regression of mean hunger wait against n.

        A slope near zero means waiting does not grow with the table size.
        """
        n_vals = np.array(sorted(results))
        waits = np.array([results[n]['mean_wait']['mean'] for n in n_vals])
        slope, intercept = np.polyfit(n_vals, waits, 1)
        predicted = slope * n_vals + intercept
        ss_res = np.sum((waits - predicted) ** 2)
        ss_tot = np.sum((waits - np.mean(waits)) ** 2)
        r_squared = 1 - ss_res / ss_tot if ss_tot > 0 else 1.0

        return {
            'slope': float(slope),
            'intercept': float(intercept),
            'r_squared': float(r_squared),
            'equation': f"wait = {slope:.2f}·n + {intercept:.1f} ms",
        }


if __name__ == '__main__':
    scenario = Scenario3()
    n_values = [2, 5, 50]
    results = scenario.run_experiment(n_values, n_replications=10)

    print("\n" + "="*80)
    print("SCENARIO 3: STARVATION AND SCALING")
    print("="*80)
    for n in n_values:
        r = results[n]
        print(f"  n={n:<3} starved runs: {r['starved']}  "
              f"wait: {r['mean_wait']['mean']:.1f} ± {r['mean_wait']['std']:.1f} ms  "
              f"fairness: {r['fairness']['mean']:.3f}")
    print(f"  {scenario.analyze_scaling(results)['equation']}")
