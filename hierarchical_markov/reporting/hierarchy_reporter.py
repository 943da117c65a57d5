"""
Tabular and visual reports for fitted hierarchical Markov chains.

This module turns the fitted clusters, hierarchy and level-wise transition
models into pandas DataFrames and renders transition heatmaps with seaborn
using a custom color scheme.
"""

import logging
from pathlib import Path
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from ..pipeline.hierarchical_markov_chain import HierarchicalMarkovChain


logger = logging.getLogger(__name__)

# Custom color scheme: Black, White, Dark Grey, Dark Green
CUSTOM_COLORS = {
    'black': '#000000',
    'white': '#FFFFFF',
    'dark_grey': '#404040',
    'dark_green': '#0d4f01'
}


class HierarchyReporter:
    """
    Report builder for one fitted HierarchicalMarkovChain.

    Args:
        model: Fitted model to report on
    """

    def __init__(self, model: HierarchicalMarkovChain):
        self.model = model

    def cluster_table(self) -> pd.DataFrame:
        """One row per base cluster with its size and centroid coordinates."""
        rows = []
        for cluster in self.model.clusters:
            row = {'cluster': cluster.id, 'size': cluster.size}
            row.update({f'x{d}': value for d, value in enumerate(cluster.centroid)})
            rows.append(row)
        return pd.DataFrame(rows).set_index('cluster')

    def hierarchy_table(self) -> pd.DataFrame:
        """One row per hierarchy node, leaves first."""
        hierarchy = self.model.hierarchy
        rows = []
        for node in hierarchy.nodes:
            rows.append({
                'node': node.index,
                'height': node.height,
                'size': node.size,
                'left': node.children[0] if node.children is not None else None,
                'right': node.children[1] if node.children is not None else None,
                'parent': node.parent,
                'members': hierarchy.members(node.index),
            })
        return pd.DataFrame(rows).set_index('node')

    def level_table(self) -> pd.DataFrame:
        """Number of groups at every distinct level."""
        return pd.DataFrame([
            {'height': height, 'n_groups': len(self.model.get_state_groups(height))}
            for height in self.model.heights
        ])

    def group_table(self, level: float) -> pd.DataFrame:
        """Groups at a level with their hierarchy node, members and centroid."""
        rows = []
        for group in self.model.get_group_details(level):
            row = {'group': group.index, 'node': group.node, 'clusters': group.clusters}
            row.update({f'x{d}': value for d, value in enumerate(group.centroid)})
            rows.append(row)
        return pd.DataFrame(rows).set_index('group')

    def transition_table(self, level: float) -> pd.DataFrame:
        """Transition model at a level, labelled by group members."""
        groups = self.model.get_state_groups(level)
        labels = ["{" + ",".join(str(c) for c in group) + "}" for group in groups]
        return pd.DataFrame(self.model.get_transition_model(level), index=labels, columns=labels)

    def plot_transition_heatmap(self, level: float, save_path: Optional[str] = None):
        """
        Heatmap of the transition model at a level.

        Args:
            level: Hierarchy level
            save_path: Image path; the figure is saved and closed when given

        Returns:
            The matplotlib figure, or the saved path when save_path is given
        """
        table = self.transition_table(level)
        n_groups = table.shape[0]
        size = max(4.0, 0.6 * n_groups + 2.0)

        fig, ax = plt.subplots(figsize=(size, size))
        sns.heatmap(
            table,
            ax=ax,
            cmap=sns.light_palette(CUSTOM_COLORS['dark_green'], as_cmap=True),
            annot=n_groups <= 12,
            fmt=".2f",
            linewidths=0.5,
            linecolor=CUSTOM_COLORS['white'],
            cbar=True,
        )
        kind = "Transition probabilities" if self.model.transition_type == "discrete" else "Transition rates"
        ax.set_title(f"{kind} at level {level:.4g}", fontsize=14, fontweight='bold',
                     color=CUSTOM_COLORS['black'])
        ax.set_xlabel("To", color=CUSTOM_COLORS['black'])
        ax.set_ylabel("From", color=CUSTOM_COLORS['black'])
        fig.tight_layout()

        if save_path is None:
            return fig

        path = Path(save_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path, dpi=150, bbox_inches='tight', facecolor=CUSTOM_COLORS['white'])
        plt.close(fig)
        logger.info("Saved transition heatmap for level %.4g to %s", level, path)
        return path

    def future_states_table(self, level: float, start_state: int, horizons) -> pd.DataFrame:
        """Predicted group distribution for several horizons, one row each."""
        horizons = list(horizons)
        groups = self.model.get_state_groups(level)
        labels = ["{" + ",".join(str(c) for c in group) + "}" for group in groups]
        rows = [self.model.future_states(level, start_state, h) for h in horizons]
        return pd.DataFrame(np.vstack(rows), index=pd.Index(horizons, name='horizon'),
                            columns=labels)
